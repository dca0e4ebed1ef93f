"""Confirm chart candidates and inventory the chart roots."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Mapping

from ..core.config import CHART_TYPES
from ..core.logging import log_event
from ..core.parallel import fan_out
from .models import ChartSet
from .paths import match_chart_paths, split_candidate

if TYPE_CHECKING:
    from ..core.context import RunContext

MANIFEST = "Chart.yaml"

ExistsCheck = Callable[[Path], bool]


def _is_file(path: Path) -> bool:
    return path.is_file()


def locate_charts(
    ctx: RunContext,
    candidates: Iterable[str],
    exists: ExistsCheck = _is_file,
) -> ChartSet:
    """Keep candidates whose manifest exists, bucketed by chart type.

    An I/O error on one candidate is logged and that candidate counts as missing.
    """
    ordered = sorted(set(candidates))

    def check(candidate: str) -> tuple[str, str, bool]:
        chart_type, directory = split_candidate(candidate)
        try:
            found = exists(ctx.repo_root / directory / MANIFEST)
        except OSError as exc:
            log_event(ctx, "warning", "charts", "locate", chart=directory, error=str(exc))
            found = False
        return chart_type, directory, found

    buckets: dict[str, list[str]] = {chart_type: [] for chart_type in CHART_TYPES}
    for chart_type, directory, found in fan_out(check, ordered):
        if found and chart_type in buckets:
            buckets[chart_type].append(directory)
    charts = ChartSet(application=tuple(buckets["application"]), library=tuple(buckets["library"]))
    if charts.total:
        log_event(ctx, "info", "charts", "locate", total=charts.total)
    return charts


def removed_charts(changes: Mapping[str, str], type_roots: Mapping[str, str]) -> tuple[str, ...]:
    """Chart directories whose manifest was deleted in ``changes``."""
    removed: set[str] = set()
    for path, status in changes.items():
        if status != "removed" or Path(path).name != MANIFEST:
            continue
        for candidate in match_chart_paths([path], type_roots):
            removed.add(split_candidate(candidate)[1])
    return tuple(sorted(removed))


def discover_charts(ctx: RunContext, changes: Mapping[str, str]) -> ChartSet:
    type_roots = ctx.config.chart.type_roots
    located = locate_charts(ctx, match_chart_paths(changes, type_roots))
    deleted = tuple(d for d in removed_charts(changes, type_roots) if d not in located.all_directories())
    return ChartSet(application=located.application, library=located.library, deleted=deleted)


@dataclass(frozen=True)
class InventoryChart:
    type: str
    name: str
    directory: str


def list_charts(ctx: RunContext) -> list[InventoryChart]:
    """Every chart under the configured type roots, sorted by type then name."""
    found: list[InventoryChart] = []
    for chart_type in CHART_TYPES:
        root = ctx.config.chart.root(chart_type)
        base = ctx.repo_root / root
        if not base.is_dir():
            continue
        for child in sorted(base.iterdir()):
            if child.is_dir() and (child / MANIFEST).is_file():
                found.append(InventoryChart(type=chart_type, name=child.name, directory=f"{root}/{child.name}"))
    return found
