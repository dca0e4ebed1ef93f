from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Protocol

from ..charts.locator import list_charts
from ..charts.models import ChartRef
from ..core.errors import ScriptError
from ..core.fs import ensure_dir
from ..core.logging import log_event
from ..index.document import INDEX_FILE, METADATA_FILE, build_global_index, write_index
from ..templates import REDIRECT_TEMPLATE, TemplateRenderer

if TYPE_CHECKING:
    from ..core.context import RunContext


class RegistryTool(Protocol):
    def registry_login(self, ctx: RunContext, registry: str, username: str, password: str) -> bool: ...

    def push(self, ctx: RunContext, package: Path, remote: str) -> None: ...


@dataclass(frozen=True)
class PublishedPackage:
    chart: str
    package: str
    remote: str


def publish_chart_pages(ctx: RunContext, renderer: TemplateRenderer, output_root: Path) -> int:
    """Mirror each chart's ``metadata.yaml`` as ``<root>/<name>/index.yaml`` with a redirect page."""
    source = renderer.load(ctx.config.theme.redirect, REDIRECT_TEMPLATE)
    count = 0
    for chart in list_charts(ctx):
        metadata = ctx.repo_root / chart.directory / METADATA_FILE
        if not metadata.is_file():
            log_event(ctx, "warning", "publish", "chart-index", chart=chart.directory, message="no metadata.yaml, skipping index")
            continue
        target = ensure_dir(output_root / chart.directory)
        if metadata.resolve() != (target / INDEX_FILE).resolve():
            shutil.copyfile(metadata, target / INDEX_FILE)
        html = renderer.render(source, {"RepoURL": ctx.repository_url, "Type": chart.type, "Name": chart.name})
        (target / "index.html").write_text(html, encoding="utf-8")
        count += 1
    log_event(ctx, "info", "publish", "chart-indexes", count=count)
    return count


def write_global_index(ctx: RunContext, output_root: Path) -> Path:
    metadata_files = [ctx.repo_root / chart.directory / METADATA_FILE for chart in list_charts(ctx)]
    index = build_global_index((path for path in metadata_files if path.is_file()), ctx.config.chart.retention)
    path = write_index(output_root / INDEX_FILE, index)
    log_event(ctx, "info", "publish", "global-index", path=str(path), charts=len(index["entries"]))
    return path


def oci_remote(ctx: RunContext, chart_type: str) -> str:
    return f"oci://{ctx.config.oci.registry}/{ctx.github.repository}/{chart_type}"


def publish_oci(ctx: RunContext, helm: RegistryTool, packages: Iterable[tuple[ChartRef, Path]]) -> list[PublishedPackage]:
    """Push packages released in this run; registry login failure skips OCI publishing."""
    work = list(packages)
    if not ctx.config.oci.enabled:
        log_event(ctx, "info", "publish", "oci", message="publishing of OCI packages is disabled")
        return []
    if not work:
        log_event(ctx, "info", "publish", "oci", message="no packages to publish")
        return []
    if ctx.dry_run:
        for chart, package in work:
            log_event(ctx, "info", "publish", "oci-push", chart=chart.label, package=package.name, dry_run=True)
        return []
    if not ctx.github.token:
        log_event(ctx, "warning", "publish", "oci-login", message="GitHub token not available for OCI authentication")
        return []
    if not helm.registry_login(ctx, ctx.config.oci.registry, ctx.github.owner, ctx.github.token):
        log_event(ctx, "warning", "publish", "oci-login", message="OCI authentication failed, skipping OCI publishing")
        return []
    published: list[PublishedPackage] = []
    for chart, package in work:
        remote = oci_remote(ctx, chart.type)
        try:
            helm.push(ctx, package, remote)
        except ScriptError as exc:
            log_event(ctx, "warning", "publish", "oci-push", chart=chart.label, error=exc.message)
            continue
        published.append(PublishedPackage(chart=chart.label, package=package.name, remote=remote))
    log_event(ctx, "info", "publish", "oci", count=len(published))
    return published
