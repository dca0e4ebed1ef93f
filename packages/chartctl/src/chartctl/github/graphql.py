"""GitHub GraphQL queries: releases, chart issues and signed commits."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Iterator, Sequence

import requests

from ..core.errors import KIND_FATAL_SETUP, KIND_TRANSIENT, GitHubApiError
from ..core.exit_codes import ERR_CONFIG
from ..core.logging import log_event
from .rest import build_session

if TYPE_CHECKING:
    from ..core.context import RunContext

RELEASES_QUERY = """
query GetReleases($owner: String!, $repo: String!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    releases(first: 100, after: $cursor, orderBy: {field: CREATED_AT, direction: DESC}) {
      pageInfo { hasNextPage endCursor }
      nodes { id name tagName createdAt isDraft isPrerelease }
    }
  }
}
"""

ISSUES_QUERY = """
query GetIssues($owner: String!, $repo: String!, $issues: Int!) {
  repository(owner: $owner, name: $repo) {
    issues(first: $issues, states: [OPEN, CLOSED], orderBy: {field: UPDATED_AT, direction: DESC}) {
      nodes {
        number state title url bodyText createdAt updatedAt
        labels(first: 10) { nodes { name } }
      }
    }
  }
}
"""

COMMIT_MUTATION = """
mutation CreateCommit($input: CreateCommitOnBranchInput!) {
  createCommitOnBranch(input: $input) {
    commit { url oid }
  }
}
"""


@dataclass(frozen=True)
class ReleaseNode:
    id: str
    name: str
    tag: str
    created_at: datetime


@dataclass(frozen=True)
class IssueNode:
    number: int
    state: str
    title: str
    url: str
    body_text: str
    created_at: datetime
    labels: tuple[str, ...] = field(default_factory=tuple)

    def to_template(self) -> dict[str, Any]:
        return {
            "Labels": list(self.labels),
            "Number": self.number,
            "State": self.state,
            "Title": self.title,
            "URL": self.url,
        }


@dataclass(frozen=True)
class FileAddition:
    path: str
    contents: str  # base64


@dataclass(frozen=True)
class CommitResult:
    oid: str
    url: str


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GraphQLClient:
    def __init__(self, ctx: RunContext, session: requests.Session | None = None, timeout_seconds: int = 30) -> None:
        if not ctx.github.token:
            raise GitHubApiError("GITHUB_TOKEN is required for GitHub API access", ERR_CONFIG, kind=KIND_FATAL_SETUP)
        ctx.github.require_repository()
        self.ctx = ctx
        self.session = session or build_session(ctx.github.token)
        self.timeout_seconds = timeout_seconds

    @property
    def endpoint(self) -> str:
        return f"{self.ctx.github.api_url}/graphql"

    def execute(self, query: str, variables: dict[str, Any], operation: str) -> dict[str, Any]:
        try:
            response = self.session.post(
                self.endpoint,
                json={"query": query, "variables": variables},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise GitHubApiError(f"{operation}: {exc}") from exc
        if response.status_code != 200:
            raise GitHubApiError(f"{operation}: HTTP {response.status_code}", status=response.status_code)
        payload = response.json()
        if payload.get("errors"):
            messages = "; ".join(str(error.get("message", error)) for error in payload["errors"])
            raise GitHubApiError(f"{operation}: {messages}", kind=KIND_TRANSIENT)
        return payload.get("data") or {}

    def paginate(
        self,
        query: str,
        variables: dict[str, Any],
        extract: Callable[[dict[str, Any]], dict[str, Any]],
        operation: str,
        limit: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Yield connection nodes page by page until exhausted or ``limit`` nodes were yielded.

        Closing the generator early stops further requests.
        """
        cursor: str | None = None
        yielded = 0
        while True:
            connection = extract(self.execute(query, {**variables, "cursor": cursor}, operation))
            if not isinstance(connection, dict) or "nodes" not in connection or "pageInfo" not in connection:
                raise GitHubApiError(f"{operation}: invalid GraphQL connection structure")
            for node in connection["nodes"]:
                if limit is not None and yielded >= limit:
                    return
                yielded += 1
                yield node
            page_info = connection["pageInfo"]
            if not page_info.get("hasNextPage") or (limit is not None and yielded >= limit):
                return
            cursor = page_info.get("endCursor")

    def releases(
        self, prefix: str = "", limit: int | None = None, accept: Callable[[str], bool] | None = None
    ) -> list[ReleaseNode]:
        nodes = self.paginate(
            RELEASES_QUERY,
            {"owner": self.ctx.github.owner, "repo": self.ctx.github.repo},
            lambda data: data["repository"]["releases"],
            "get-releases",
        )
        found: list[ReleaseNode] = []
        for node in nodes:
            if not node["tagName"].startswith(prefix) or (accept is not None and not accept(node["tagName"])):
                continue
            found.append(
                ReleaseNode(
                    id=node["id"],
                    name=node.get("name") or "",
                    tag=node["tagName"],
                    created_at=parse_timestamp(node["createdAt"]),
                )
            )
            if limit is not None and len(found) >= limit:
                nodes.close()
                break
        log_event(self.ctx, "info", "github", "get-releases", prefix=prefix, count=len(found))
        return found

    def issues(self, since: datetime | None = None, count: int = 50) -> list[IssueNode]:
        data = self.execute(
            ISSUES_QUERY,
            {"owner": self.ctx.github.owner, "repo": self.ctx.github.repo, "issues": count},
            "get-issues",
        )
        issues: list[IssueNode] = []
        for node in data["repository"]["issues"]["nodes"]:
            created = parse_timestamp(node.get("createdAt") or node["updatedAt"])
            if since is not None and created <= since:
                continue
            issues.append(
                IssueNode(
                    number=int(node["number"]),
                    state=node["state"],
                    title=node["title"],
                    url=node["url"],
                    body_text=node.get("bodyText") or "",
                    created_at=created,
                    labels=tuple(label["name"] for label in node["labels"]["nodes"]),
                )
            )
        return issues

    def create_signed_commit(
        self,
        branch: str,
        expected_head: str,
        message: str,
        additions: Sequence[FileAddition] = (),
        deletions: Sequence[str] = (),
    ) -> CommitResult:
        changes: dict[str, Any] = {}
        if additions:
            changes["additions"] = [{"path": item.path, "contents": item.contents} for item in additions]
        if deletions:
            changes["deletions"] = [{"path": path} for path in deletions]
        variables = {
            "input": {
                "branch": {"repositoryNameWithOwner": self.ctx.github.repository, "branchName": branch},
                "message": {"headline": message},
                "expectedHeadOid": expected_head,
                "fileChanges": changes,
            }
        }
        commit = self.execute(COMMIT_MUTATION, variables, "create-signed-commit")["createCommitOnBranch"]["commit"]
        log_event(self.ctx, "info", "github", "create-signed-commit", branch=branch, oid=commit["oid"])
        return CommitResult(oid=commit["oid"], url=commit["url"])
