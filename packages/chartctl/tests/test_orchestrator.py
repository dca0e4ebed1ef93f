from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
import yaml

from chartctl.charts.models import ChartRef
from chartctl.core.errors import KIND_CONFLICT, KIND_FATAL_SETUP, GitHubApiError, ScriptError
from chartctl.github.rest import GitHubRest, Release
from chartctl.index.document import write_index
from chartctl.release.orchestrator import ReleaseOrchestrator, Stage

from conftest import FakeHelm, FakeHost, FakeSession, make_response

FOO = ChartRef("application", "foo", "application/foo")
BAR = ChartRef("application", "bar", "application/bar")


def metadata_versions(repo_root: Path, chart: ChartRef) -> list[str]:
    data = yaml.safe_load((repo_root / chart.directory / "metadata.yaml").read_text(encoding="utf-8"))
    return [entry["version"] for entry in data["entries"][chart.name]]


@pytest.mark.unit
def test_lint_failure_is_isolated(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.0.0")
    chart_writer("application/bar", "0.3.0")
    ctx = make_ctx()
    host = FakeHost()
    summary = ReleaseOrchestrator(ctx, FakeHelm(lint_failures={"bar"}), host).run([FOO, BAR])
    assert summary.counts() == {"processed": 2, "released": 1, "skipped": 0, "failed": 1}
    failed = next(o for o in summary.outcomes if o.result == "failed")
    assert failed.chart == BAR
    assert failed.stage is Stage.FAILED
    assert failed.kind == "validation_failure"
    assert host.assets == [("foo-1.0.0", "application.tgz", host.assets[0][2])]


@pytest.mark.unit
def test_released_chart_is_indexed_with_release_urls(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.0.0")
    ctx = make_ctx()
    summary = ReleaseOrchestrator(ctx, FakeHelm(), FakeHost()).run([FOO])
    outcome = summary.outcomes[0]
    assert outcome.stage is Stage.INDEXED
    assert outcome.package == ctx.repo_root / ".cr-release-packages/application/foo-1.0.0.tgz"
    data = yaml.safe_load((ctx.repo_root / "application/foo/metadata.yaml").read_text(encoding="utf-8"))
    assert data["entries"]["foo"][0]["urls"] == [
        "https://github.com/acme/charts/releases/download/foo-1.0.0/application.tgz"
    ]


@pytest.mark.unit
def test_second_run_for_same_version_is_skipped(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.0.0")
    ctx = make_ctx()
    host = FakeHost()
    helm = FakeHelm()
    first = ReleaseOrchestrator(ctx, helm, host).run([FOO])
    second = ReleaseOrchestrator(ctx, helm, host).run([FOO])
    assert first.counts()["released"] == 1
    assert second.counts() == {"processed": 1, "released": 0, "skipped": 1, "failed": 0}
    assert second.outcomes[0].stage is Stage.SKIPPED_EXISTING
    assert second.outcomes[0].indexed is False
    assert len(host.assets) == 1


@pytest.mark.unit
def test_skipped_release_heals_missing_index_entry(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.1.0")
    ctx = make_ctx()
    write_index(ctx.repo_root / "application/foo/metadata.yaml", {"entries": {"foo": [{"version": "1.0.0"}]}})
    summary = ReleaseOrchestrator(ctx, FakeHelm(), FakeHost(existing={"foo-1.1.0"})).run([FOO])
    outcome = summary.outcomes[0]
    assert outcome.result == "skipped"
    assert outcome.indexed is True
    assert metadata_versions(ctx.repo_root, FOO) == ["1.1.0", "1.0.0"]


@pytest.mark.unit
def test_retention_applies_to_persisted_index(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "5.0.0")
    ctx = make_ctx(settings={"chart": {"packages": {"retention": 3}}})
    write_index(
        ctx.repo_root / "application/foo/metadata.yaml",
        {"entries": {"foo": [{"version": v} for v in ("1.0.0", "2.0.0", "3.0.0", "4.0.0")]}},
    )
    ReleaseOrchestrator(ctx, FakeHelm(), FakeHost()).run([FOO])
    assert metadata_versions(ctx.repo_root, FOO) == ["5.0.0", "4.0.0", "3.0.0"]


@pytest.mark.unit
def test_concurrent_release_conflict_counts_as_skip(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.0.0")

    class RacingHost(FakeHost):
        def create_release(self, tag: str, name: str, body: str) -> Release:
            raise GitHubApiError("create-release: HTTP 422", kind=KIND_CONFLICT, status=422)

    summary = ReleaseOrchestrator(make_ctx(), FakeHelm(), RacingHost()).run([FOO])
    assert summary.counts()["skipped"] == 1
    assert summary.counts()["failed"] == 0


@pytest.mark.unit
def test_rejected_release_fails_without_index_entry(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.0.0")
    ctx = make_ctx()
    invalid = {"message": "Validation Failed", "errors": [{"resource": "Release", "code": "invalid", "field": "tag_name"}]}
    session = FakeSession([make_response(404, {"message": "Not Found"}), make_response(422, invalid)])
    summary = ReleaseOrchestrator(ctx, FakeHelm(), GitHubRest(ctx, session)).run([FOO])
    assert summary.counts() == {"processed": 1, "released": 0, "skipped": 0, "failed": 1}
    assert summary.outcomes[0].kind == "transient_io_failure"
    assert summary.outcomes[0].indexed is False
    assert not (ctx.repo_root / "application/foo/metadata.yaml").exists()


@pytest.mark.unit
def test_host_errors_fail_only_that_chart(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.0.0")
    chart_writer("application/bar", "1.0.0")

    class FlakyHost(FakeHost):
        def get_release_by_tag(self, tag: str) -> Release | None:
            if tag.startswith("bar"):
                raise GitHubApiError("get-release: HTTP 502", status=502)
            return super().get_release_by_tag(tag)

    summary = ReleaseOrchestrator(make_ctx(), FakeHelm(), FlakyHost()).run([FOO, BAR])
    assert summary.counts() == {"processed": 2, "released": 1, "skipped": 0, "failed": 1}
    failed = next(o for o in summary.outcomes if o.result == "failed")
    assert failed.kind == "transient_io_failure"
    assert failed.to_payload()["chart"] == "application/bar"


@pytest.mark.unit
def test_chart_without_version_fails_validation(make_ctx: Callable[..., object], tmp_path: Path) -> None:
    (tmp_path / "application/foo").mkdir(parents=True)
    (tmp_path / "application/foo/Chart.yaml").write_text("name: foo\n", encoding="utf-8")
    summary = ReleaseOrchestrator(make_ctx(), FakeHelm(), FakeHost()).run([FOO])
    assert summary.outcomes[0].kind == "validation_failure"


@pytest.mark.unit
def test_unwritable_packages_directory_aborts_batch(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.0.0")
    ctx = make_ctx()
    (ctx.repo_root / ".cr-release-packages").write_text("not a directory", encoding="utf-8")
    with pytest.raises(ScriptError) as exc:
        ReleaseOrchestrator(ctx, FakeHelm(), FakeHost()).run([FOO])
    assert exc.value.kind == KIND_FATAL_SETUP


@pytest.mark.unit
def test_dependencies_are_updated_before_packaging(make_ctx: Callable[..., object], chart_writer: Callable[..., Path]) -> None:
    chart_writer("application/foo", "1.0.0", dependencies=[{"name": "common", "version": "0.1.0", "repository": "oci://x"}])
    helm = FakeHelm()
    ReleaseOrchestrator(make_ctx(), helm, FakeHost()).run([FOO])
    ops = [op for op, name in helm.calls if name == "foo"]
    assert ops[:3] == ["lint", "dependency_update", "package"]
