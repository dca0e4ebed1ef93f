from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Sequence

from ..core.errors import ScriptError
from ..core.exit_codes import ERR_GITHUB
from ..core.git import GitService
from ..core.logging import log_event
from .graphql import FileAddition, GraphQLClient

if TYPE_CHECKING:
    from ..core.context import RunContext


def signed_commit(
    ctx: RunContext,
    git: GitService,
    graphql: GraphQLClient,
    files: Sequence[str],
    message: str,
    branch: str | None = None,
) -> int:
    """Stage ``files`` and push them as one signed commit on ``branch``; returns the number of files committed."""
    if not files:
        return 0
    head_ref = branch or ctx.github.head_ref
    if not head_ref:
        raise ScriptError("signed commit requires a head branch", ERR_GITHUB, kind="git_error")
    if ctx.dry_run:
        log_event(ctx, "info", "git", "signed-commit", branch=head_ref, files=len(files), dry_run=True)
        return 0
    current_head = git.revision("HEAD")
    git.fetch("origin", head_ref)
    git.switch(head_ref)
    git.add(list(files))
    staged = git.staged_changes()
    if staged.total == 0:
        log_event(ctx, "info", "git", "signed-commit", branch=head_ref, message="no changes to commit")
        return 0
    additions = [
        FileAddition(path=path, contents=base64.b64encode((ctx.repo_root / path).read_bytes()).decode("ascii"))
        for path in staged.additions
    ]
    graphql.create_signed_commit(head_ref, current_head, message, additions=additions, deletions=staged.deletions)
    log_event(ctx, "info", "git", "signed-commit", branch=head_ref, files=len(files))
    return len(files)
