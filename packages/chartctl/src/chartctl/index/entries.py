from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ..charts.models import ChartRef
from .document import INDEX_FILE, chart_entries, load_index, release_download_base, rewrite_entry_urls
from .merge import IndexEntry

if TYPE_CHECKING:
    from ..core.context import RunContext


class IndexTool(Protocol):
    def package(self, ctx: RunContext, directory: Path, destination: Path) -> Path: ...

    def repo_index(self, ctx: RunContext, directory: Path, url: str | None = None, merge: Path | None = None) -> None: ...


def _indexed(ctx: RunContext, helm: IndexTool, chart: ChartRef, workdir: Path) -> list[IndexEntry]:
    base_url = release_download_base(ctx.github.html_url)
    helm.repo_index(ctx, workdir, base_url)
    generated = chart_entries(load_index(workdir / INDEX_FILE), chart.name) or []
    return rewrite_entry_urls(generated, chart.name, chart.type, base_url, ctx.config.release.tag_template)


def package_entries(ctx: RunContext, helm: IndexTool, chart: ChartRef, package: Path) -> list[IndexEntry]:
    """Index entries for an already built ``package``, pointing at the chart's release asset."""
    with tempfile.TemporaryDirectory(prefix="chartctl-index-") as tmp:
        workdir = Path(tmp)
        shutil.copy2(package, workdir / package.name)
        return _indexed(ctx, helm, chart, workdir)


def chart_entries_from_source(ctx: RunContext, helm: IndexTool, chart: ChartRef) -> list[IndexEntry]:
    """Package ``chart`` into a scratch directory and index it."""
    with tempfile.TemporaryDirectory(prefix="chartctl-metadata-") as tmp:
        workdir = Path(tmp)
        helm.package(ctx, chart.path(ctx.repo_root), workdir)
        return _indexed(ctx, helm, chart, workdir)
