from __future__ import annotations

import argparse

from ..core.context import RunContext
from ..core.output import build_payload, emit
from ..github.rest import GitHubRest
from ..templates import TemplateRenderer
from .labels import update_labels
from .report import report_workflow_issue


def run_labels_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.labels_cmd != "update":
        return 2
    created = update_labels(ctx, GitHubRest(ctx))
    return emit(ctx, build_payload(ctx, "labels-update", True, created=created), f"created={len(created)}")


def run_issue_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.issue_cmd != "report":
        return 2
    url = report_workflow_issue(ctx, GitHubRest(ctx), TemplateRenderer(ctx))
    return emit(ctx, build_payload(ctx, "issue-report", True, issue=url), url or "no issues detected")


def configure_labels_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("labels", help="repository label management")
    p_sub = p.add_subparsers(dest="labels_cmd", required=True)
    p_sub.add_parser("update", help="create configured labels that do not exist yet")


def configure_issue_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("issue", help="workflow issue reporting")
    p_sub = p.add_subparsers(dest="issue_cmd", required=True)
    p_sub.add_parser("report", help="open an issue when the current workflow run failed or warned")
