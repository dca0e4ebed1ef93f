"""Pull-request chart maintenance: application revisions, lock files, metadata and lint."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Protocol, Sequence

import yaml

from ..core.errors import KIND_TRANSIENT, ScriptError
from ..core.exit_codes import ERR_ARTIFACT
from ..core.fs import load_yaml_mapping, write_yaml
from ..core.git import GitService
from ..core.logging import log_event
from ..core.parallel import fan_out
from ..index.document import METADATA_FILE, chart_entries, load_index, update_chart_index
from ..index.entries import IndexTool, chart_entries_from_source
from ..index.merge import has_version
from .models import ChartRef
from .tags import format_tag

if TYPE_CHECKING:
    from ..core.context import RunContext

Committer = Callable[[Sequence[str], str], int]


class UpdateTool(IndexTool, Protocol):
    def dependency_update(self, ctx: RunContext, directory: Path) -> None: ...

    def lint(self, ctx: RunContext, directory: Path, strict: bool = True) -> None: ...


@dataclass
class StepResult:
    kind: str
    files: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    committed: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_payload(self) -> dict[str, Any]:
        return {"kind": self.kind, "files": self.files, "failed": self.failed, "committed": self.committed}


def commit_message(kind: str, count: int) -> str:
    return f"chore(github-action): update {kind} {'file' if count == 1 else 'files'}"


class ChartUpdater:
    def __init__(self, ctx: RunContext, helm: UpdateTool, git: GitService, commit: Committer) -> None:
        self.ctx = ctx
        self.helm = helm
        self.git = git
        self.commit = commit

    def _step(self, kind: str, charts: Sequence[ChartRef], update: Callable[[ChartRef], list[str]]) -> StepResult:
        result = StepResult(kind=kind)
        if not charts:
            return result

        def guarded(chart: ChartRef) -> tuple[ChartRef, list[str], str]:
            try:
                return chart, update(chart), ""
            except ScriptError as exc:
                return chart, [], exc.message
            except (OSError, yaml.YAMLError, KeyError, TypeError) as exc:
                return chart, [], f"{type(exc).__name__}: {exc}"

        for chart, files, error in fan_out(guarded, charts):
            if error:
                log_event(self.ctx, "error", "charts", f"update-{kind}", chart=chart.label, error=error)
                result.failed.append(chart.label)
            result.files.extend(files)
        if result.files:
            result.committed = self.commit(sorted(result.files), commit_message(kind, len(result.files)))
        else:
            log_event(self.ctx, "info", "charts", f"update-{kind}", message=f"no {kind} file changes to commit")
        return result

    def _application(self, chart: ChartRef) -> list[str]:
        directory = chart.path(self.ctx.repo_root)
        app_file = directory / "application.yaml"
        if not app_file.is_file():
            return []
        version = str(load_yaml_mapping(directory / "Chart.yaml").get("version", ""))
        tag = format_tag(self.ctx.config.release.tag_template, chart.name, version)
        app = load_yaml_mapping(app_file)
        source = app["spec"]["source"]
        if source.get("targetRevision") == tag:
            return []
        source["targetRevision"] = tag
        write_yaml(app_file, app)
        log_event(self.ctx, "info", "charts", "update-application", chart=chart.label, revision=tag)
        return [f"{chart.directory}/application.yaml"]

    def _lock(self, chart: ChartRef) -> list[str]:
        directory = chart.path(self.ctx.repo_root)
        lock = f"{chart.directory}/Chart.lock"
        if load_yaml_mapping(directory / "Chart.yaml").get("dependencies"):
            self.helm.dependency_update(self.ctx, directory)
            status = self.git.status()
            return [lock] if lock in status.modified or lock in status.untracked else []
        if (directory / "Chart.lock").is_file():
            (directory / "Chart.lock").unlink()
            log_event(self.ctx, "info", "charts", "update-lock", chart=chart.label, message="removed stale Chart.lock")
            return [lock]
        return []

    def _metadata(self, chart: ChartRef) -> list[str]:
        directory = chart.path(self.ctx.repo_root)
        path = directory / METADATA_FILE
        version = str(load_yaml_mapping(directory / "Chart.yaml").get("version", ""))
        if has_version(chart_entries(load_index(path), chart.name) or [], version):
            return []
        fresh = chart_entries_from_source(self.ctx, self.helm, chart)
        if not fresh:
            raise ScriptError(f"{chart.label}: helm repo index produced no entries", ERR_ARTIFACT, kind=KIND_TRANSIENT)
        update_chart_index(path, chart.name, fresh, self.ctx.config.chart.retention)
        return [f"{chart.directory}/{METADATA_FILE}"]

    def application(self, charts: Sequence[ChartRef]) -> StepResult:
        return self._step("application", charts, self._application)

    def lock(self, charts: Sequence[ChartRef]) -> StepResult:
        return self._step("dependency lock", charts, self._lock)

    def metadata(self, charts: Sequence[ChartRef]) -> StepResult:
        return self._step("metadata", charts, self._metadata)

    def lint(self, charts: Sequence[ChartRef]) -> StepResult:
        result = StepResult(kind="lint")
        for chart in charts:
            try:
                self.helm.lint(self.ctx, chart.path(self.ctx.repo_root), strict=True)
            except ScriptError as exc:
                log_event(self.ctx, "warning", "charts", "lint", chart=chart.label, error=exc.message)
                result.failed.append(chart.label)
        return result
