from __future__ import annotations

from typing import Any

from chartctl.core.errors import GitHubApiError
from chartctl.github.env import GitHubEnv
from chartctl.github.rest import WorkflowRun
from chartctl.issues.labels import update_labels
from chartctl.issues.report import has_failed_steps, issue_context, logs_have_warnings, report_workflow_issue
from chartctl.templates import TemplateRenderer

ENV = GitHubEnv(
    repository="acme/charts",
    token="t",
    event_name="push",
    event={"after": "0123456789abcdef", "repository": {"default_branch": "main"}},
    run_id="77",
    workflow="Release",
)


class FakeRest:
    def __init__(
        self,
        conclusion: str = "success",
        jobs: list[dict[str, Any]] | None = None,
        logs: str = "",
        existing: set[str] | None = None,
        missing_run: bool = False,
    ) -> None:
        self.conclusion = conclusion
        self.jobs = jobs or []
        self.logs = logs
        self.existing = set(existing or ())
        self.missing_run = missing_run
        self.created_labels: list[str] = []
        self.issues: list[tuple[str, str, list[str]]] = []

    def get_workflow_run(self, run_id: str) -> WorkflowRun:
        if self.missing_run:
            raise GitHubApiError("get-workflow-run: HTTP 404", status=404)
        return WorkflowRun(id=int(run_id), status="completed", conclusion=self.conclusion, url="")

    def list_workflow_jobs(self, run_id: str) -> list[dict[str, Any]]:
        return self.jobs

    def download_run_logs(self, run_id: str) -> str:
        return self.logs

    def get_label(self, name: str) -> dict[str, Any] | None:
        return {"name": name} if name in self.existing else None

    def create_label(self, name: str, color: str, description: str) -> None:
        self.created_labels.append(name)
        self.existing.add(name)

    def create_issue(self, title: str, body: str, labels: list[str]) -> str:
        self.issues.append((title, body, labels))
        return "https://github.com/acme/charts/issues/1"


def test_warning_detection() -> None:
    assert logs_have_warnings("2026-01-01T00:00:00Z ##[group]\nwarning: chart deprecated\n")
    assert logs_have_warnings("helm:Warning: something")
    assert not logs_have_warnings("no warnings were found here")


def test_failed_step_detection() -> None:
    assert has_failed_steps([{"steps": [{"conclusion": "success"}, {"conclusion": "failure"}]}])
    assert not has_failed_steps([{"steps": [{"conclusion": "success"}]}, {"steps": None}])


def test_labels_disabled_by_default(make_ctx) -> None:
    rest = FakeRest()
    assert update_labels(make_ctx(), rest) == []
    assert rest.created_labels == []


def test_labels_created_only_when_missing(make_ctx) -> None:
    rest = FakeRest(existing={"bug", "triage"})
    ctx = make_ctx(settings={"issue": {"create_labels": True}})
    created = update_labels(ctx, rest, ["bug", "triage", "workflow", "unknown"])
    assert created == ["workflow"]
    assert rest.created_labels == ["workflow"]


def test_labels_dry_run_creates_nothing(make_ctx) -> None:
    rest = FakeRest()
    ctx = make_ctx(settings={"issue": {"create_labels": True}}, dry_run=True)
    assert update_labels(ctx, rest) == []
    assert rest.created_labels == []


def test_issue_context_for_push(make_ctx) -> None:
    context = issue_context(make_ctx(github=ENV))
    assert context == {
        "Workflow": "Release",
        "RunID": "77",
        "Sha": "0123456789abcdef",
        "Branch": "main",
        "RepoURL": "https://github.com/acme/charts",
    }


def test_clean_run_opens_no_issue(make_ctx) -> None:
    ctx = make_ctx(github=ENV)
    rest = FakeRest(jobs=[{"steps": [{"conclusion": "success"}]}], logs="all good\n")
    assert report_workflow_issue(ctx, rest, TemplateRenderer(ctx)) is None
    assert rest.issues == []


def test_missing_run_is_not_an_issue(make_ctx) -> None:
    ctx = make_ctx(github=ENV)
    assert report_workflow_issue(ctx, FakeRest(missing_run=True), TemplateRenderer(ctx)) is None


def test_failed_run_opens_labelled_issue(make_ctx) -> None:
    ctx = make_ctx(github=ENV)
    rest = FakeRest(conclusion="failure")
    url = report_workflow_issue(ctx, rest, TemplateRenderer(ctx))
    assert url == "https://github.com/acme/charts/issues/1"
    title, body, labels = rest.issues[0]
    assert title == "workflow: Issues Detected"
    assert labels == ["bug", "triage", "workflow"]
    assert "[Release](https://github.com/acme/charts/actions/runs/77)" in body
    assert "[`0123456`](https://github.com/acme/charts/commit/0123456789abcdef)" in body


def test_warning_logs_open_issue_unless_dry_run(make_ctx) -> None:
    rest = FakeRest(logs="Warning: deprecated API\n")
    ctx = make_ctx(github=ENV, dry_run=True)
    assert report_workflow_issue(ctx, rest, TemplateRenderer(ctx)) is None
    assert rest.issues == []
