from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..core.process import CommandResult, run_command

if TYPE_CHECKING:
    from ..core.context import RunContext


@dataclass(frozen=True)
class CliAdapter:
    bin_name: str
    timeout_seconds: int = 0

    def run(
        self,
        ctx: RunContext,
        *args: str,
        cwd: Path | None = None,
        input_text: str | None = None,
        retries: int = 0,
    ) -> CommandResult:
        return run_command(
            [self.bin_name, *[str(a) for a in args]],
            cwd or ctx.repo_root,
            timeout_seconds=self.timeout_seconds,
            retries=retries,
            retry_delay_seconds=2.0 if retries else 0.0,
            ctx=ctx,
            input_text=input_text,
        )

    def version(self, ctx: RunContext, *args: str) -> CommandResult:
        return self.run(ctx, *(args or ("--version",)))
