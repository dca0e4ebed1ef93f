from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from ..core.errors import KIND_TRANSIENT, ScriptError
from ..core.exit_codes import ERR_ARTIFACT
from ._base import CliAdapter

if TYPE_CHECKING:
    from ..core.context import RunContext


@dataclass(frozen=True)
class HelmDocsCli(CliAdapter):
    bin_name: str = "helm-docs"
    timeout_seconds: int = 300

    def generate(self, ctx: RunContext, directories: Sequence[str], log_level: str) -> None:
        args: list[str] = []
        if directories:
            args.extend(["-g", ",".join(directories)])
        args.extend(["-l", log_level])
        result = self.run(ctx, *args)
        if not result.ok:
            raise ScriptError(f"helm-docs failed: {result.combined_output}", ERR_ARTIFACT, kind=KIND_TRANSIENT)
