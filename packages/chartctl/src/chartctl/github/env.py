from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from ..core.errors import KIND_FATAL_SETUP, ScriptError
from ..core.exit_codes import ERR_CONFIG
from ..core.logging import log_event

if TYPE_CHECKING:
    from ..core.context import RunContext


@dataclass(frozen=True)
class GitHubEnv:
    repository: str = ""
    token: str = ""
    event_name: str = ""
    event: Mapping[str, Any] = field(default_factory=dict)
    head_ref: str = ""
    ref_name: str = ""
    run_id: str = ""
    workflow: str = ""
    api_url: str = "https://api.github.com"
    server_url: str = "https://github.com"
    output_path: str = ""
    actions: bool = False

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "GitHubEnv":
        event: dict[str, Any] = {}
        event_path = environ.get("GITHUB_EVENT_PATH", "")
        if event_path and Path(event_path).is_file():
            try:
                loaded = json.loads(Path(event_path).read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise ScriptError(f"invalid event payload {event_path}: {exc}", ERR_CONFIG, kind=KIND_FATAL_SETUP) from exc
            event = loaded if isinstance(loaded, dict) else {}
        return cls(
            repository=environ.get("GITHUB_REPOSITORY", ""),
            token=environ.get("GITHUB_TOKEN") or environ.get("INPUT_GITHUB-TOKEN", ""),
            event_name=environ.get("GITHUB_EVENT_NAME", ""),
            event=event,
            head_ref=environ.get("GITHUB_HEAD_REF", ""),
            ref_name=environ.get("GITHUB_REF_NAME", ""),
            run_id=environ.get("GITHUB_RUN_ID", ""),
            workflow=environ.get("GITHUB_WORKFLOW", ""),
            api_url=environ.get("GITHUB_API_URL", "https://api.github.com").rstrip("/"),
            server_url=environ.get("GITHUB_SERVER_URL", "https://github.com").rstrip("/"),
            output_path=environ.get("GITHUB_OUTPUT", ""),
            actions=environ.get("GITHUB_ACTIONS", "").lower() == "true",
        )

    @property
    def owner(self) -> str:
        return self.repository.partition("/")[0]

    @property
    def repo(self) -> str:
        return self.repository.partition("/")[2]

    @property
    def html_url(self) -> str:
        return f"{self.server_url}/{self.repository}"

    @property
    def pages_url(self) -> str:
        return f"https://{self.owner}.github.io/{self.repo}"

    @property
    def default_branch(self) -> str:
        return str(self.event.get("repository", {}).get("default_branch") or "main")

    @property
    def is_private(self) -> bool:
        return bool(self.event.get("repository", {}).get("private", False))

    @property
    def branch(self) -> str:
        return self.head_ref or self.ref_name or self.default_branch

    def require_repository(self) -> None:
        if "/" not in self.repository:
            raise ScriptError("GITHUB_REPOSITORY must be set as <owner>/<repo>", ERR_CONFIG, kind=KIND_FATAL_SETUP)


def set_output(ctx: RunContext, name: str, value: object) -> None:
    """Append ``name=value`` to the step outputs file, or log it outside Actions."""
    rendered = str(value).lower() if isinstance(value, bool) else str(value)
    if ctx.github.output_path:
        with Path(ctx.github.output_path).open("a", encoding="utf-8") as handle:
            handle.write(f"{name}={rendered}\n")
    log_event(ctx, "info", "github", "set-output", name=name, value=rendered)
