"""Jinja2 rendering for release notes, redirects, the frontpage and workflow issues."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

import jinja2

from ..core.errors import TemplateError
from ..core.logging import log_event

if TYPE_CHECKING:
    from ..core.context import RunContext

RELEASE_TEMPLATE = "release.md.j2"
REDIRECT_TEMPLATE = "redirect.html.j2"
FRONTPAGE_TEMPLATE = "frontpage.md.j2"
WORKFLOW_ISSUE_TEMPLATE = "workflow-issue.md.j2"


def templates_root() -> Path:
    return Path(__file__).resolve().parent


def raw_url(repo_url: str) -> str:
    return str(repo_url).replace("github.com", "raw.githubusercontent.com", 1)


def is_equal(left: object, right: object) -> bool:
    return left == right


class TemplateRenderer:
    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(templates_root())),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,
        )
        self.env.globals["isEqual"] = is_equal

    def load(self, override: str | None, default: str) -> str:
        """Template source from the repository path ``override`` or the packaged ``default``."""
        if override:
            path = self.ctx.repo_root / override
            try:
                return path.read_text(encoding="utf-8")
            except OSError as exc:
                raise TemplateError(f"cannot read template {override}: {exc}") from exc
        return (templates_root() / default).read_text(encoding="utf-8")

    def render(self, source: str, context: Mapping[str, Any], repo_url: str | None = None) -> str:
        try:
            template = self.env.from_string(source)
            values = dict(context)
            if repo_url is not None:
                values["RepoRawURL"] = raw_url(repo_url)
            rendered = template.render(**values)
        except jinja2.TemplateError as exc:
            raise TemplateError(f"template rendering failed: {exc}") from exc
        log_event(self.ctx, "debug", "templates", "render", size=len(rendered))
        return rendered
