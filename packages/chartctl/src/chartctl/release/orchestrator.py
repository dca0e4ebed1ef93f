"""Per-chart release pipeline with failure isolation.

Each chart moves ``DISCOVERED -> VALIDATED -> PACKAGED -> (SKIPPED_EXISTING |
RELEASED) -> INDEXED`` or ends in ``FAILED``. Charts run concurrently; the
stages of one chart run in order and only touch that chart's files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable, Protocol

import yaml

from ..charts.models import ChartRef
from ..charts.tags import format_tag
from ..core.errors import KIND_CONFLICT, KIND_FATAL_SETUP, KIND_TRANSIENT, KIND_VALIDATION, ScriptError
from ..core.exit_codes import ERR_RELEASE, ERR_VALIDATION
from ..core.fs import ensure_dir, load_yaml_mapping
from ..core.logging import log_event
from ..core.parallel import fan_out
from ..github.rest import Release
from ..index.document import METADATA_FILE, chart_entries, load_index, update_chart_index
from ..index.entries import package_entries
from ..index.merge import has_version

if TYPE_CHECKING:
    from ..core.context import RunContext


class Stage(str, Enum):
    DISCOVERED = "discovered"
    VALIDATED = "validated"
    PACKAGED = "packaged"
    SKIPPED_EXISTING = "skipped_existing"
    RELEASED = "released"
    INDEXED = "indexed"
    FAILED = "failed"


class ChartTool(Protocol):
    def lint(self, ctx: RunContext, directory: Path, strict: bool = True) -> None: ...

    def dependency_update(self, ctx: RunContext, directory: Path) -> None: ...

    def package(self, ctx: RunContext, directory: Path, destination: Path) -> Path: ...

    def repo_index(self, ctx: RunContext, directory: Path, url: str | None = None, merge: Path | None = None) -> None: ...


class ReleaseHost(Protocol):
    def get_release_by_tag(self, tag: str) -> Release | None: ...

    def create_release(self, tag: str, name: str, body: str) -> Release: ...

    def upload_release_asset(self, release: Release, name: str, data: bytes) -> str: ...


NotesBuilder = Callable[[ChartRef, dict[str, Any], str], str]


@dataclass
class ChartOutcome:
    chart: ChartRef
    stage: Stage = Stage.DISCOVERED
    result: str = "pending"
    version: str = ""
    tag: str = ""
    package: Path | None = None
    indexed: bool = False
    error: str = ""
    kind: str = ""

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chart": self.chart.label,
            "stage": self.stage.value,
            "result": self.result,
            "version": self.version,
            "tag": self.tag,
            "indexed": self.indexed,
        }
        if self.error:
            payload["error"] = self.error
            payload["kind"] = self.kind
        return payload


@dataclass
class ReleaseSummary:
    outcomes: list[ChartOutcome] = field(default_factory=list)

    def _count(self, result: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.result == result)

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def released(self) -> int:
        return self._count("released")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def released_packages(self) -> list[tuple[ChartRef, Path]]:
        return [(o.chart, o.package) for o in self.outcomes if o.result == "released" and o.package is not None]

    def counts(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "released": self.released,
            "skipped": self.skipped,
            "failed": self.failed,
        }

    def to_payload(self) -> dict[str, Any]:
        return {**self.counts(), "charts": [outcome.to_payload() for outcome in self.outcomes]}


def _default_notes(chart: ChartRef, metadata: dict[str, Any], tag: str) -> str:
    return str(metadata.get("description") or tag)


class ReleaseOrchestrator:
    def __init__(
        self,
        ctx: RunContext,
        helm: ChartTool,
        host: ReleaseHost,
        notes: NotesBuilder | None = None,
        jobs: int = 4,
    ) -> None:
        self.ctx = ctx
        self.helm = helm
        self.host = host
        self.notes = notes or _default_notes
        self.jobs = jobs

    @property
    def packages_root(self) -> Path:
        return self.ctx.repo_root / self.ctx.config.release.packages_dir

    def package_dir(self, chart: ChartRef) -> Path:
        return self.packages_root / self.ctx.config.chart.root(chart.type)

    def prepare(self, charts: Iterable[ChartRef]) -> None:
        try:
            for chart_type in sorted({chart.type for chart in charts}):
                ensure_dir(self.packages_root / self.ctx.config.chart.root(chart_type))
        except OSError as exc:
            raise ScriptError(
                f"cannot create packages directory {self.packages_root}: {exc}", ERR_RELEASE, kind=KIND_FATAL_SETUP
            ) from exc

    def run(self, charts: Iterable[ChartRef]) -> ReleaseSummary:
        ordered = sorted(charts, key=lambda chart: chart.identity)
        self.prepare(ordered)
        summary = ReleaseSummary(outcomes=fan_out(self.process, ordered, jobs=self.jobs))
        log_event(self.ctx, "info", "release", "summary", **summary.counts())
        for outcome in summary.outcomes:
            if outcome.result == "failed":
                log_event(self.ctx, "error", "release", "chart-failed", chart=outcome.chart.label, kind=outcome.kind, error=outcome.error)
        return summary

    def process(self, chart: ChartRef) -> ChartOutcome:
        outcome = ChartOutcome(chart=chart)
        try:
            self._pipeline(outcome)
        except ScriptError as exc:
            outcome.result, outcome.error, outcome.kind = "failed", exc.message, exc.kind
        except (OSError, yaml.YAMLError, ValueError) as exc:
            outcome.result, outcome.error, outcome.kind = "failed", str(exc), KIND_TRANSIENT
        if outcome.result == "failed":
            level = "warning" if outcome.kind == KIND_VALIDATION else "error"
            log_event(self.ctx, level, "release", outcome.stage.value, chart=chart.label, kind=outcome.kind, error=outcome.error)
            outcome.stage = Stage.FAILED
        return outcome

    def _pipeline(self, outcome: ChartOutcome) -> None:
        chart = outcome.chart
        directory = chart.path(self.ctx.repo_root)
        metadata = load_yaml_mapping(directory / "Chart.yaml")
        version = str(metadata.get("version") or "")
        if not version:
            raise ScriptError(f"{chart.label}: Chart.yaml has no version", ERR_VALIDATION, kind=KIND_VALIDATION)
        outcome.version = version
        outcome.tag = format_tag(self.ctx.config.release.tag_template, chart.name, version)

        self.helm.lint(self.ctx, directory, strict=True)
        outcome.stage = Stage.VALIDATED

        if metadata.get("dependencies"):
            self.helm.dependency_update(self.ctx, directory)
        package = self.helm.package(self.ctx, directory, self.package_dir(chart))
        outcome.package = package
        outcome.stage = Stage.PACKAGED

        if self.host.get_release_by_tag(outcome.tag) is not None:
            self._skip(outcome, "release exists")
        else:
            self._release(outcome, metadata, package)

        index_path = directory / METADATA_FILE
        if outcome.result == "released" or not has_version(chart_entries(load_index(index_path), chart.name) or [], version):
            self._index(outcome, package, index_path)
            outcome.indexed = True
            outcome.stage = Stage.INDEXED

    def _skip(self, outcome: ChartOutcome, reason: str) -> None:
        outcome.stage = Stage.SKIPPED_EXISTING
        outcome.result = "skipped"
        log_event(self.ctx, "info", "release", "skip", chart=outcome.chart.label, tag=outcome.tag, reason=reason)

    def _release(self, outcome: ChartOutcome, metadata: dict[str, Any], package: Path) -> None:
        body = self.notes(outcome.chart, metadata, outcome.tag)
        try:
            release = self.host.create_release(outcome.tag, outcome.tag, body)
        except ScriptError as exc:
            if exc.kind != KIND_CONFLICT:
                raise
            self._skip(outcome, "release created concurrently")
            return
        self.host.upload_release_asset(release, f"{outcome.chart.type}.tgz", package.read_bytes())
        outcome.stage = Stage.RELEASED
        outcome.result = "released"
        log_event(self.ctx, "info", "release", "released", chart=outcome.chart.label, tag=outcome.tag)

    def _index(self, outcome: ChartOutcome, package: Path, index_path: Path) -> None:
        fresh = package_entries(self.ctx, self.helm, outcome.chart, package)
        if not fresh:
            raise ScriptError(f"{outcome.chart.label}: no index entry generated for {package.name}", ERR_RELEASE, kind=KIND_TRANSIENT)
        update_chart_index(index_path, outcome.chart.name, fresh, self.ctx.config.chart.retention)
        log_event(self.ctx, "info", "release", "indexed", chart=outcome.chart.label, version=outcome.version)
