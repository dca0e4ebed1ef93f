from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from .errors import ScriptError
from .exit_codes import ERR_PREREQ
from .process import CommandResult, run_command

if TYPE_CHECKING:
    from .context import RunContext

_NAME_STATUS_KINDS = {
    "A": "added",
    "C": "added",
    "M": "modified",
    "T": "modified",
    "R": "renamed",
    "D": "removed",
}


@dataclass(frozen=True)
class GitContext:
    sha: str
    is_dirty: bool


@dataclass(frozen=True)
class GitStatus:
    modified: tuple[str, ...] = ()
    untracked: tuple[str, ...] = ()
    staged: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()


@dataclass(frozen=True)
class StagedChanges:
    additions: tuple[str, ...] = field(default_factory=tuple)
    deletions: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return len(self.additions) + len(self.deletions)


def read_git_context(repo_root: Path) -> GitContext:
    sha_res = run_command(["git", "rev-parse", "--short", "HEAD"], repo_root)
    sha = sha_res.stdout.strip() if sha_res.code == 0 else "unknown"
    dirty_res = run_command(["git", "status", "--porcelain"], repo_root)
    is_dirty = bool(dirty_res.stdout.strip()) if dirty_res.code == 0 else True
    return GitContext(sha=sha or "unknown", is_dirty=is_dirty)


def find_repo_root(start: Path) -> Path:
    res = run_command(["git", "rev-parse", "--show-toplevel"], start)
    if res.code == 0 and res.stdout.strip():
        return Path(res.stdout.strip()).resolve()
    return start.resolve()


def parse_porcelain(output: str) -> GitStatus:
    modified: list[str] = []
    untracked: list[str] = []
    staged: list[str] = []
    deleted: list[str] = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        status, path = line[:2], line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        if "M" in status:
            modified.append(path)
        if "?" in status:
            untracked.append(path)
        if "D" in status:
            deleted.append(path)
        if status[0] in {"A", "R", "C"}:
            staged.append(path)
    return GitStatus(tuple(modified), tuple(untracked), tuple(staged), tuple(deleted))


def parse_name_status(output: str) -> dict[str, str]:
    changes: dict[str, str] = {}
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 2 or not parts[0]:
            continue
        kind = _NAME_STATUS_KINDS.get(parts[0][0], "modified")
        if kind == "renamed":
            changes[parts[1]] = "removed"
            changes[parts[-1]] = "added"
            continue
        changes[parts[-1]] = kind
    return changes


Runner = Callable[..., CommandResult]


class GitService:
    def __init__(self, ctx: RunContext, runner: Runner = run_command) -> None:
        self.ctx = ctx
        self._runner = runner

    def run(self, *args: str) -> str:
        result = self._runner(["git", *args], self.ctx.repo_root, ctx=self.ctx)
        if result.code != 0:
            raise ScriptError(f"git {args[0]} failed: {result.combined_output}", ERR_PREREQ, kind="git_error")
        return result.stdout

    def revision(self, ref: str = "HEAD") -> str:
        return self.run("rev-parse", ref).strip()

    def status(self) -> GitStatus:
        return parse_porcelain(self.run("status", "--porcelain"))

    def changed_files(self, base: str, head: str = "HEAD") -> dict[str, str]:
        return parse_name_status(self.run("diff", "--name-status", base, head))

    def diff_names(self) -> list[str]:
        return [line for line in self.run("diff", "--name-only").splitlines() if line]

    def staged_changes(self) -> StagedChanges:
        additions = parse_name_status(self.run("diff", "--staged", "--name-status", "--diff-filter=ACMRT"))
        deletions = parse_name_status(self.run("diff", "--staged", "--name-status", "--diff-filter=D"))
        renamed_from = {path for path, kind in additions.items() if kind == "removed"}
        return StagedChanges(
            additions=tuple(sorted(path for path, kind in additions.items() if kind != "removed")),
            deletions=tuple(sorted(set(deletions) | renamed_from)),
        )

    def add(self, files: list[str]) -> None:
        if files:
            self.run("add", "--", *files)

    def fetch(self, remote: str = "origin", ref: str | None = None) -> None:
        self.run("fetch", remote, *([ref] if ref else []))

    def switch(self, branch: str) -> None:
        self.run("switch", branch)

    def configure(self, name: str, email: str) -> None:
        self.run("config", "user.email", email)
        self.run("config", "user.name", name)
