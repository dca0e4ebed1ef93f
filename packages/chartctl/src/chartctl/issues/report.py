"""Open an issue when the current workflow run failed or logged warnings."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from ..core.errors import GitHubApiError
from ..core.logging import log_event
from ..github.rest import GitHubRest
from ..templates import WORKFLOW_ISSUE_TEMPLATE, TemplateRenderer
from .labels import update_labels

if TYPE_CHECKING:
    from ..core.context import RunContext

_WARNING = re.compile(r"(^|:)warning:", re.IGNORECASE | re.MULTILINE)
_FAILED_CONCLUSIONS = {"cancelled", "failure"}


def has_failed_steps(jobs: list[dict[str, Any]]) -> bool:
    return any(step.get("conclusion") != "success" for job in jobs for step in job.get("steps") or [])


def logs_have_warnings(logs: str) -> bool:
    return bool(_WARNING.search(logs))


def workflow_has_issues(ctx: RunContext, rest: GitHubRest) -> bool:
    run_id = ctx.github.run_id
    try:
        run = rest.get_workflow_run(run_id)
        if run.conclusion in _FAILED_CONCLUSIONS:
            return True
        if has_failed_steps(rest.list_workflow_jobs(run_id)):
            return True
        return logs_have_warnings(rest.download_run_logs(run_id))
    except GitHubApiError as exc:
        if exc.status != 404:
            log_event(ctx, "warning", "issues", "validate-workflow", error=exc.message)
        return False


def issue_context(ctx: RunContext) -> dict[str, Any]:
    event = ctx.github.event
    pull_request = event.get("pull_request") or {}
    head = pull_request.get("head") or {}
    return {
        "Workflow": ctx.github.workflow,
        "RunID": ctx.github.run_id,
        "Sha": head.get("sha") if pull_request else event.get("after", ""),
        "Branch": head.get("ref") if pull_request else ctx.github.default_branch,
        "RepoURL": ctx.github.html_url,
    }


def report_workflow_issue(ctx: RunContext, rest: GitHubRest, renderer: TemplateRenderer) -> str | None:
    """Returns the created issue URL, or ``None`` when the run had no problems."""
    if not workflow_has_issues(ctx, rest):
        log_event(ctx, "info", "issues", "report", message="no workflow issues detected")
        return None
    source = renderer.load(ctx.config.workflow.template, WORKFLOW_ISSUE_TEMPLATE)
    body = renderer.render(source, issue_context(ctx), repo_url=ctx.github.html_url)
    labels = list(ctx.config.workflow.labels)
    update_labels(ctx, rest, labels)
    if ctx.dry_run:
        log_event(ctx, "info", "issues", "report", title=ctx.config.workflow.title, dry_run=True)
        return None
    return rest.create_issue(ctx.config.workflow.title, body, labels)
