from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from ..charts.locator import list_charts
from ..core.fs import ensure_dir, load_yaml_mapping
from ..core.logging import log_event
from ..templates import FRONTPAGE_TEMPLATE, TemplateRenderer

if TYPE_CHECKING:
    from ..core.context import RunContext

FRONTPAGE_FILE = "index.md"


def frontpage_charts(ctx: RunContext) -> list[dict[str, Any]]:
    """Chart rows for the frontpage, sorted by type then name."""
    rows: list[dict[str, Any]] = []
    for chart in list_charts(ctx):
        try:
            manifest = load_yaml_mapping(ctx.repo_root / chart.directory / "Chart.yaml")
        except (OSError, yaml.YAMLError) as exc:
            log_event(ctx, "warning", "pages", "frontpage", chart=chart.directory, error=str(exc))
            continue
        rows.append(
            {
                "Description": str(manifest.get("description") or ""),
                "Name": chart.name,
                "Path": chart.directory,
                "Type": chart.type,
                "Version": str(manifest.get("version") or ""),
            }
        )
    return sorted(rows, key=lambda row: (row["Type"], row["Name"]))


def generate_frontpage(ctx: RunContext, renderer: TemplateRenderer, output_root: Path) -> Path:
    charts = frontpage_charts(ctx)
    source = renderer.load(ctx.config.theme.frontpage, FRONTPAGE_TEMPLATE)
    content = renderer.render(
        source,
        {
            "Charts": charts,
            "RepoURL": ctx.github.html_url,
            "PagesURL": ctx.repository_url,
            "RepoName": ctx.github.repo or "charts",
            "Branch": ctx.github.default_branch,
        },
        repo_url=ctx.github.html_url,
    )
    path = ensure_dir(output_root) / FRONTPAGE_FILE
    path.write_text(content, encoding="utf-8")
    log_event(ctx, "info", "pages", "frontpage", charts=len(charts), path=str(path))
    return path
