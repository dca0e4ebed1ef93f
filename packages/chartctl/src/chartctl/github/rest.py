"""GitHub REST client on a retrying :mod:`requests` session."""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..core.errors import KIND_CONFLICT, KIND_FATAL_SETUP, KIND_TRANSIENT, GitHubApiError
from ..core.exit_codes import ERR_CONFIG
from ..core.logging import log_event

if TYPE_CHECKING:
    from ..core.context import RunContext

PAGE_SIZE = 100
_UPLOAD_TEMPLATE_SUFFIX = "{?name,label}"


@dataclass(frozen=True)
class Release:
    id: int
    tag: str
    name: str
    html_url: str = ""
    upload_url: str = ""


@dataclass(frozen=True)
class WorkflowRun:
    id: int
    status: str
    conclusion: str
    url: str


def build_session(token: str, retries: int = 3) -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS"}),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update(
        {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "chartctl",
        }
    )
    return session


class GitHubRest:
    def __init__(self, ctx: RunContext, session: requests.Session | None = None, timeout_seconds: int = 30) -> None:
        if not ctx.github.token:
            raise GitHubApiError("GITHUB_TOKEN is required for GitHub API access", ERR_CONFIG, kind=KIND_FATAL_SETUP)
        ctx.github.require_repository()
        self.ctx = ctx
        self.session = session or build_session(ctx.github.token)
        self.timeout_seconds = timeout_seconds

    @property
    def repo_url(self) -> str:
        return f"{self.ctx.github.api_url}/repos/{self.ctx.github.repository}"

    def request(self, method: str, url: str, operation: str, expected: tuple[int, ...] = (200,), **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout_seconds, **kwargs)
        except requests.RequestException as exc:
            raise GitHubApiError(f"{operation}: {exc}") from exc
        if response.status_code not in expected:
            kind = KIND_CONFLICT if _already_exists(response) else KIND_TRANSIENT
            raise GitHubApiError(
                f"{operation}: HTTP {response.status_code} {_error_message(response)}",
                kind=kind,
                status=response.status_code,
            )
        log_event(self.ctx, "debug", "github", operation, status=response.status_code)
        return response

    def paginate(self, url: str, operation: str, params: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        page = 1
        while True:
            response = self.request("GET", url, operation, params={**(params or {}), "per_page": PAGE_SIZE, "page": page})
            items = response.json()
            yield from items
            if len(items) < PAGE_SIZE:
                return
            page += 1

    def get_release_by_tag(self, tag: str) -> Release | None:
        response = self.request("GET", f"{self.repo_url}/releases/tags/{tag}", "get-release", expected=(200, 404))
        if response.status_code == 404:
            return None
        return _release(response.json())

    def create_release(self, tag: str, name: str, body: str, draft: bool = False, prerelease: bool = False) -> Release:
        response = self.request(
            "POST",
            f"{self.repo_url}/releases",
            "create-release",
            expected=(201,),
            json={"tag_name": tag, "name": name, "body": body, "draft": draft, "prerelease": prerelease},
        )
        release = _release(response.json())
        log_event(self.ctx, "info", "github", "create-release", tag=tag, release_id=release.id)
        return release

    def upload_release_asset(self, release: Release, name: str, data: bytes, content_type: str = "application/gzip") -> str:
        if release.upload_url:
            url = release.upload_url.replace(_UPLOAD_TEMPLATE_SUFFIX, "")
        else:
            url = f"{self.repo_url}/releases/{release.id}/assets".replace("://api.", "://uploads.", 1)
        response = self.request(
            "POST",
            url,
            "upload-release-asset",
            expected=(201,),
            params={"name": name},
            data=data,
            headers={"Content-Type": content_type},
        )
        payload = response.json()
        log_event(self.ctx, "info", "github", "upload-release-asset", release_id=release.id, asset=name, size=len(data))
        return str(payload.get("browser_download_url", ""))

    def compare_commits(self, base: str, head: str) -> dict[str, str]:
        response = self.request("GET", f"{self.repo_url}/compare/{base}...{head}", "compare-commits")
        return {item["filename"]: item["status"] for item in response.json().get("files", [])}

    def list_pull_request_files(self, number: int) -> dict[str, str]:
        return {
            item["filename"]: item["status"]
            for item in self.paginate(f"{self.repo_url}/pulls/{number}/files", "list-pull-request-files")
        }

    def updated_files(self) -> dict[str, str]:
        """Changed files of the triggering event, keyed by path."""
        event = self.ctx.github.event
        if self.ctx.github.event_name == "pull_request":
            number = (event.get("pull_request") or {}).get("number")
            if not number:
                log_event(self.ctx, "warning", "github", "updated-files", message="pull request data missing from event")
                return {}
            files = self.list_pull_request_files(int(number))
        else:
            before, after = event.get("before"), event.get("after")
            if not before or not after:
                log_event(self.ctx, "warning", "github", "updated-files", message="commit data missing from event")
                return {}
            files = self.compare_commits(str(before), str(after))
        log_event(self.ctx, "info", "github", "updated-files", event=self.ctx.github.event_name or "push", count=len(files))
        return files

    def get_label(self, name: str) -> dict[str, Any] | None:
        response = self.request("GET", f"{self.repo_url}/labels/{name}", "get-label", expected=(200, 404))
        return None if response.status_code == 404 else response.json()

    def create_label(self, name: str, color: str, description: str) -> None:
        self.request(
            "POST",
            f"{self.repo_url}/labels",
            "create-label",
            expected=(201,),
            json={"name": name, "color": color, "description": description},
        )
        log_event(self.ctx, "info", "github", "create-label", label=name)

    def create_issue(self, title: str, body: str, labels: list[str]) -> str:
        response = self.request(
            "POST",
            f"{self.repo_url}/issues",
            "create-issue",
            expected=(201,),
            json={"title": title, "body": body, "labels": labels},
        )
        url = str(response.json().get("html_url", ""))
        log_event(self.ctx, "info", "github", "create-issue", url=url)
        return url

    def get_workflow_run(self, run_id: str) -> WorkflowRun:
        data = self.request("GET", f"{self.repo_url}/actions/runs/{run_id}", "get-workflow-run").json()
        return WorkflowRun(
            id=int(data["id"]),
            status=str(data.get("status") or ""),
            conclusion=str(data.get("conclusion") or ""),
            url=str(data.get("html_url") or ""),
        )

    def list_workflow_jobs(self, run_id: str) -> list[dict[str, Any]]:
        jobs: list[dict[str, Any]] = []
        page = 1
        while True:
            data = self.request(
                "GET",
                f"{self.repo_url}/actions/runs/{run_id}/jobs",
                "list-workflow-jobs",
                params={"per_page": PAGE_SIZE, "page": page},
            ).json()
            batch = data.get("jobs", [])
            jobs.extend(batch)
            if len(batch) < PAGE_SIZE:
                return jobs
            page += 1

    def download_run_logs(self, run_id: str) -> str:
        response = self.request("GET", f"{self.repo_url}/actions/runs/{run_id}/logs", "download-run-logs")
        chunks: list[str] = []
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            for member in sorted(archive.namelist()):
                if member.endswith(".txt"):
                    chunks.append(archive.read(member).decode("utf-8", errors="replace"))
        return "\n".join(chunks)


def _release(data: dict[str, Any]) -> Release:
    return Release(
        id=int(data["id"]),
        tag=str(data.get("tag_name", "")),
        name=str(data.get("name") or ""),
        html_url=str(data.get("html_url") or ""),
        upload_url=str(data.get("upload_url") or ""),
    )


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        return str(payload.get("message", ""))
    return ""


def _already_exists(response: requests.Response) -> bool:
    """A 422 whose validation errors report an existing resource, as GitHub does for a taken tag."""
    if response.status_code != 422:
        return False
    try:
        payload = response.json()
    except ValueError:
        return False
    errors = payload.get("errors") if isinstance(payload, dict) else None
    return any(isinstance(error, dict) and error.get("code") == "already_exists" for error in errors or [])
