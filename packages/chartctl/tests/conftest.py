from __future__ import annotations

import copy
import json
import socket
from pathlib import Path
from typing import Any, Callable

import pytest
import requests
import yaml

from chartctl.core.config import DEFAULT_SETTINGS, ChartsConfig, merge_settings
from chartctl.core.context import RunContext
from chartctl.core.errors import KIND_VALIDATION, ScriptError
from chartctl.core.exit_codes import ERR_VALIDATION
from chartctl.github.env import GitHubEnv
from chartctl.github.rest import Release

_ALLOWED_MARKERS = {"unit", "integration", "slow"}


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        names = {mark.name for mark in item.iter_markers()}
        if not names.intersection(_ALLOWED_MARKERS):
            item.add_marker("unit")


@pytest.fixture(autouse=True)
def no_network_for_unit(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("slow"):
        return

    def _blocked(*_args: object, **_kwargs: object) -> socket.socket:
        raise RuntimeError("network disabled in unit tests")

    def _blocked_connect(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("network disabled in unit tests")

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked_connect)


def build_ctx(
    repo_root: Path,
    settings: dict[str, Any] | None = None,
    github: GitHubEnv | None = None,
    dry_run: bool = False,
    output_format: str = "text",
) -> RunContext:
    merged = merge_settings(copy.deepcopy(DEFAULT_SETTINGS), settings or {})
    return RunContext(
        run_id="test-run",
        repo_root=repo_root,
        config=ChartsConfig.from_mapping(merged),
        github=github
        or GitHubEnv(
            repository="acme/charts",
            token="token",
            event_name="push",
            event={"before": "a" * 40, "after": "b" * 40, "repository": {"default_branch": "main", "private": False}},
            head_ref="feature",
        ),
        output_format=output_format,  # type: ignore[arg-type]
        verbose=False,
        quiet=True,
        log_json=False,
        dry_run=dry_run,
        git_sha="abc1234",
        git_dirty=False,
    )


@pytest.fixture
def make_ctx(tmp_path: Path) -> Callable[..., RunContext]:
    def _make(**kwargs: Any) -> RunContext:
        repo_root = kwargs.pop("repo_root", tmp_path)
        return build_ctx(repo_root, **kwargs)

    return _make


def write_chart(
    repo_root: Path,
    directory: str,
    version: str = "1.0.0",
    dependencies: list[dict[str, str]] | None = None,
    **extra: Any,
) -> Path:
    chart_dir = repo_root / directory
    chart_dir.mkdir(parents=True, exist_ok=True)
    manifest: dict[str, Any] = {"apiVersion": "v2", "name": chart_dir.name, "version": version, **extra}
    if dependencies:
        manifest["dependencies"] = dependencies
    (chart_dir / "Chart.yaml").write_text(yaml.safe_dump(manifest), encoding="utf-8")
    return chart_dir


@pytest.fixture
def chart_writer(tmp_path: Path) -> Callable[..., Path]:
    def _write(directory: str, version: str = "1.0.0", **kwargs: Any) -> Path:
        return write_chart(tmp_path, directory, version, **kwargs)

    return _write


class FakeHelm:
    """In-memory stand-in for the helm CLI."""

    def __init__(self, lint_failures: set[str] | None = None, login_ok: bool = True) -> None:
        self.lint_failures = set(lint_failures or ())
        self.login_ok = login_ok
        self.calls: list[tuple[str, str]] = []
        self.pushed: list[tuple[str, str]] = []

    def lint(self, ctx: RunContext, directory: Path, strict: bool = True) -> None:
        self.calls.append(("lint", directory.name))
        if directory.name in self.lint_failures:
            raise ScriptError(f"helm lint failed for {directory}", ERR_VALIDATION, kind=KIND_VALIDATION)

    def dependency_update(self, ctx: RunContext, directory: Path) -> None:
        self.calls.append(("dependency_update", directory.name))

    def package(self, ctx: RunContext, directory: Path, destination: Path) -> Path:
        self.calls.append(("package", directory.name))
        manifest = yaml.safe_load((directory / "Chart.yaml").read_text(encoding="utf-8"))
        destination.mkdir(parents=True, exist_ok=True)
        target = destination / f"{manifest['name']}-{manifest['version']}.tgz"
        target.write_bytes(json.dumps(manifest, sort_keys=True).encode("utf-8"))
        return target

    def repo_index(self, ctx: RunContext, directory: Path, url: str | None = None, merge: Path | None = None) -> None:
        self.calls.append(("repo_index", str(directory)))
        entries: dict[str, list[dict[str, Any]]] = {}
        for archive in sorted(directory.glob("*.tgz")):
            manifest = json.loads(archive.read_bytes())
            link = f"{url}/{archive.name}" if url else archive.name
            entries.setdefault(manifest["name"], []).append(
                {"name": manifest["name"], "version": manifest["version"], "urls": [link], "digest": "sha256:0"}
            )
        (directory / "index.yaml").write_text(
            yaml.safe_dump({"apiVersion": "v1", "entries": entries}), encoding="utf-8"
        )

    def template(self, ctx: RunContext, directory: Path) -> str:
        return "kind: ConfigMap\n"

    def registry_login(self, ctx: RunContext, registry: str, username: str, password: str) -> bool:
        self.calls.append(("registry_login", registry))
        return self.login_ok

    def push(self, ctx: RunContext, package: Path, remote: str) -> None:
        self.pushed.append((package.name, remote))


class FakeHost:
    """In-memory release host keyed by tag."""

    def __init__(self, existing: set[str] | None = None) -> None:
        self.releases: dict[str, Release] = {}
        self.assets: list[tuple[str, str, int]] = []
        self.bodies: dict[str, str] = {}
        for tag in sorted(existing or ()):
            self.releases[tag] = Release(id=len(self.releases) + 1, tag=tag, name=tag)

    def get_release_by_tag(self, tag: str) -> Release | None:
        return self.releases.get(tag)

    def create_release(self, tag: str, name: str, body: str) -> Release:
        release = Release(id=len(self.releases) + 1, tag=tag, name=name)
        self.releases[tag] = release
        self.bodies[tag] = body
        return release

    def upload_release_asset(self, release: Release, name: str, data: bytes) -> str:
        self.assets.append((release.tag, name, len(data)))
        return f"https://github.com/acme/charts/releases/download/{release.tag}/{name}"


@pytest.fixture
def fake_helm() -> FakeHelm:
    return FakeHelm()


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


def make_response(status: int, payload: Any = None, content: bytes | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    if payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = content or b""
    return response


class FakeSession:
    """Replays queued responses and records every request."""

    def __init__(self, responses: list[requests.Response] | None = None) -> None:
        self.responses = list(responses or [])
        self.requests: list[dict[str, Any]] = []
        self.headers: dict[str, str] = {}

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.requests.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {url}")
        return self.responses.pop(0)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)
