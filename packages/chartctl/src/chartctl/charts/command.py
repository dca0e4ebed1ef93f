from __future__ import annotations

import argparse
from typing import Sequence

from ..adapters import helm, helm_docs
from ..core.context import RunContext
from ..core.git import GitService
from ..core.output import build_payload, emit
from ..docs.generate import generate_docs
from ..github.commits import signed_commit
from ..github.graphql import GraphQLClient
from ..github.rest import GitHubRest
from .locator import discover_charts
from .update import ChartUpdater, Committer


def make_committer(ctx: RunContext, git: GitService, graphql: GraphQLClient | None = None) -> Committer:
    def commit(files: Sequence[str], message: str) -> int:
        client = graphql or GraphQLClient(ctx)
        return signed_commit(ctx, git, client, files, message)

    return commit


def run_discover(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.base:
        changes = GitService(ctx).changed_files(ns.base, ns.head)
    else:
        changes = GitHubRest(ctx).updated_files()
    charts = discover_charts(ctx, changes)
    payload = build_payload(ctx, "discover", True, charts=charts.to_payload())
    lines = [f"total={charts.total}"]
    if ctx.output_format != "json":
        for chart in charts.refs():
            lines.append(f"\n- {chart.label} ({chart.directory})")
        for directory in charts.deleted:
            lines.append(f"\n- deleted {directory}")
    return emit(ctx, payload, "".join(lines))


def run_update(ctx: RunContext, ns: argparse.Namespace) -> int:
    rest = GitHubRest(ctx)
    git = GitService(ctx)
    commit = make_committer(ctx, git, GraphQLClient(ctx, session=rest.session))
    charts = discover_charts(ctx, rest.updated_files())
    refs = charts.refs()
    updater = ChartUpdater(ctx, helm, git, commit)
    steps = [updater.application(refs), updater.lock(refs), updater.metadata(refs), updater.lint(refs)]
    if refs:
        steps.append(generate_docs(ctx, helm_docs, git, commit, charts.all_directories()))
    ok = all(step.ok for step in steps)
    payload = build_payload(ctx, "charts-update", ok, charts=charts.to_payload(), steps=[step.to_payload() for step in steps])
    failed = sum(len(step.failed) for step in steps)
    return emit(ctx, payload, f"charts={charts.total} failed={failed}")


def run_charts_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.charts_cmd == "update":
        return run_update(ctx, ns)
    return 2


def configure_discover_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("discover", help="list charts touched by the event or a revision range")
    p.add_argument("--base", default=None, help="base revision (default: GitHub event changes)")
    p.add_argument("--head", default="HEAD", help="head revision used with --base")


def configure_charts_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("charts", help="pull request chart maintenance")
    p_sub = p.add_subparsers(dest="charts_cmd", required=True)
    p_sub.add_parser("update", help="update application files, lock files, metadata and docs for changed charts")
