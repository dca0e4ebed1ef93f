from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

from ..charts.update import Committer, StepResult
from ..core.errors import ScriptError
from ..core.git import GitService
from ..core.logging import log_event

if TYPE_CHECKING:
    from ..core.context import RunContext

DOCS_MESSAGE = "chore(github-action): update documentation"


class DocsTool(Protocol):
    def generate(self, ctx: RunContext, directories: Sequence[str], log_level: str) -> None: ...


def generate_docs(
    ctx: RunContext,
    helm_docs: DocsTool,
    git: GitService,
    commit: Committer,
    directories: Sequence[str] = (),
) -> StepResult:
    """Regenerate chart READMEs and commit whatever helm-docs changed."""
    result = StepResult(kind="documentation")
    try:
        helm_docs.generate(ctx, list(directories), ctx.config.workflow.docs_log_level)
    except ScriptError as exc:
        log_event(ctx, "error", "docs", "generate", error=exc.message)
        result.failed.append("helm-docs")
        return result
    result.files = git.diff_names()
    if not result.files:
        log_event(ctx, "info", "docs", "generate", message="documentation is up to date")
        return result
    result.committed = commit(result.files, DOCS_MESSAGE)
    log_event(ctx, "info", "docs", "generate", files=len(result.files))
    return result
