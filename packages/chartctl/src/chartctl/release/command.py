from __future__ import annotations

import argparse
from dataclasses import asdict
from pathlib import Path

from .. import adapters
from ..charts.locator import discover_charts
from ..core.context import RunContext
from ..core.logging import log_event
from ..core.output import build_payload, emit
from ..github.graphql import GraphQLClient
from ..github.rest import GitHubRest
from ..templates import TemplateRenderer
from .local import LocalRelease
from .notes import ReleaseNotes
from .orchestrator import ReleaseOrchestrator, ReleaseSummary
from .publish import publish_chart_pages, publish_oci, write_global_index


def run_release(ctx: RunContext, ns: argparse.Namespace) -> int:
    rest = GitHubRest(ctx)
    helm = adapters.helm
    charts = discover_charts(ctx, rest.updated_files())
    for directory in charts.deleted:
        log_event(ctx, "info", "release", "deleted", chart=directory)
    summary = ReleaseSummary()
    pages = 0
    oci: list[dict[str, str]] = []
    if not charts.total:
        log_event(ctx, "info", "release", "run", message="no chart releases found")
    elif not ctx.config.chart.packages_enabled:
        log_event(ctx, "info", "release", "run", message="publishing of chart packages is disabled")
    else:
        renderer = TemplateRenderer(ctx)
        notes = ReleaseNotes(ctx, renderer, GraphQLClient(ctx, session=rest.session))
        summary = ReleaseOrchestrator(ctx, helm, rest, notes=notes, jobs=ns.jobs).run(charts.refs())
        output_root = Path(ns.output).resolve() if ns.output else ctx.repo_root
        pages = publish_chart_pages(ctx, renderer, output_root)
        write_global_index(ctx, output_root)
        oci = [asdict(item) for item in publish_oci(ctx, helm, summary.released_packages)]
    payload = build_payload(
        ctx,
        "release-run",
        summary.failed == 0,
        **summary.to_payload(),
        deleted=list(charts.deleted),
        chart_indexes=pages,
        oci=oci,
    )
    counts = summary.counts()
    return emit(ctx, payload, " ".join(f"{key}={value}" for key, value in counts.items()))


def run_local(ctx: RunContext, ns: argparse.Namespace) -> int:
    result = LocalRelease(ctx).run()
    payload = build_payload(ctx, "release-local", not result.failed, **result.to_payload())
    return emit(ctx, payload, f"processed={result.processed} published={result.published}")


def run_release_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.release_cmd == "run":
        return run_release(ctx, ns)
    if ns.release_cmd == "local":
        return run_local(ctx, ns)
    return 2


def configure_release_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("release", help="chart release commands")
    p_sub = p.add_subparsers(dest="release_cmd", required=True)
    run = p_sub.add_parser("run", help="release changed charts to GitHub releases, indexes and OCI")
    run.add_argument("--jobs", type=int, default=4, help="charts processed concurrently")
    run.add_argument("--output", default=None, help="pages output directory (default: repository root)")
    p_sub.add_parser("local", help="validate and package locally changed charts")
