"""Validate and package locally changed charts against a live cluster."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .. import adapters
from ..adapters import HelmCli, KubectlCli
from ..charts.locator import locate_charts
from ..charts.models import ChartRef
from ..charts.paths import match_chart_paths
from ..core.errors import KIND_FATAL_SETUP, KIND_VALIDATION, ScriptError
from ..core.exit_codes import ERR_PREREQ, ERR_VALIDATION
from ..core.fs import ensure_dir
from ..core.git import GitService
from ..core.logging import log_event

if TYPE_CHECKING:
    from ..core.context import RunContext

LOCAL_PACKAGES_DIR = ".cr-local-packages"


@dataclass
class LocalResult:
    processed: int = 0
    published: int = 0
    failed: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {"processed": self.processed, "published": self.published, "failed": list(self.failed)}


class LocalRelease:
    def __init__(
        self,
        ctx: RunContext,
        helm: HelmCli | None = None,
        kubectl: KubectlCli | None = None,
        git: GitService | None = None,
    ) -> None:
        self.ctx = ctx
        self.helm = helm or adapters.helm
        self.kubectl = kubectl or adapters.kubectl
        self.git = git or GitService(ctx)

    def check_prerequisites(self) -> None:
        result = adapters.git.run(self.ctx, "--version")
        if not result.ok:
            raise ScriptError("git is required but not available", ERR_PREREQ, kind=KIND_FATAL_SETUP)
        helm_version = self.helm.require(self.ctx)
        kubectl_version = self.kubectl.require(self.ctx)
        log_event(self.ctx, "info", "local", "prerequisites", git=result.stdout.strip(), helm=helm_version, kubectl=kubectl_version)

    def changed_files(self) -> list[str]:
        status = self.git.status()
        return sorted({*status.modified, *status.untracked})

    def validate(self, chart: ChartRef) -> None:
        directory = chart.path(self.ctx.repo_root)
        self.helm.lint(self.ctx, directory, strict=True)
        manifests = self.helm.template(self.ctx, directory)
        if not manifests.strip():
            raise ScriptError(f"{chart.label}: empty template output", ERR_VALIDATION, kind=KIND_VALIDATION)
        self.kubectl.validate(self.ctx, manifests)
        icon = directory / self.ctx.config.chart.icon
        if not icon.is_file():
            raise ScriptError(f"{chart.label}: {self.ctx.config.chart.icon} not found", ERR_VALIDATION, kind=KIND_VALIDATION)

    def run(self) -> LocalResult:
        self.check_prerequisites()
        charts = locate_charts(self.ctx, match_chart_paths(self.changed_files(), self.ctx.config.chart.type_roots))
        result = LocalResult(processed=charts.total)
        if not charts.total:
            log_event(self.ctx, "info", "local", "run", message="no changed charts")
            return result
        destination = ensure_dir(self.ctx.repo_root / LOCAL_PACKAGES_DIR)
        for chart in charts.refs():
            try:
                self.validate(chart)
                directory = chart.path(self.ctx.repo_root)
                self.helm.dependency_update(self.ctx, directory)
                self.helm.package(self.ctx, directory, destination)
            except ScriptError as exc:
                log_event(self.ctx, "error", "local", "chart", chart=chart.label, kind=exc.kind, error=exc.message)
                result.failed.append(chart.label)
                continue
            result.published += 1
        if result.published:
            self.helm.repo_index(self.ctx, destination)
        log_event(self.ctx, "info", "local", "run", processed=result.processed, published=result.published, failed=len(result.failed))
        return result
