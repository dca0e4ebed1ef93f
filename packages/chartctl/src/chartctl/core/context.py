from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Mapping

from ..github.env import GitHubEnv
from .config import ChartsConfig, load_config
from .git import find_repo_root, read_git_context

OutputFormat = Literal["text", "json"]


@dataclass(frozen=True)
class RunContext:
    run_id: str
    repo_root: Path
    config: ChartsConfig
    github: GitHubEnv
    output_format: OutputFormat
    verbose: bool
    quiet: bool
    log_json: bool
    dry_run: bool
    git_sha: str
    git_dirty: bool

    @property
    def repository_url(self) -> str:
        return self.config.repository.url or self.github.pages_url

    def path(self, relative: str | Path) -> Path:
        return self.repo_root / relative

    @classmethod
    def from_args(
        cls,
        run_id: str | None = None,
        config_path: str | None = None,
        output_format: OutputFormat = "text",
        verbose: bool = False,
        quiet: bool = False,
        log_json: bool = False,
        dry_run: bool = False,
        repo_root: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "RunContext":
        env = dict(os.environ if environ is None else environ)
        root = repo_root.resolve() if repo_root is not None else find_repo_root(Path.cwd())
        git_ctx = read_git_context(root)
        default_run = f"chartctl-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}-{git_ctx.sha}"
        return cls(
            run_id=run_id or env.get("RUN_ID", default_run),
            repo_root=root,
            config=load_config(root, config_path, env),
            github=GitHubEnv.from_environ(env),
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            log_json=log_json,
            dry_run=dry_run,
            git_sha=git_ctx.sha,
            git_dirty=git_ctx.is_dirty,
        )
