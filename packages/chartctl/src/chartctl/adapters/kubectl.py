from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.errors import KIND_FATAL_SETUP, KIND_VALIDATION, ScriptError
from ..core.exit_codes import ERR_PREREQ, ERR_VALIDATION
from ._base import CliAdapter

if TYPE_CHECKING:
    from ..core.context import RunContext


@dataclass(frozen=True)
class KubectlCli(CliAdapter):
    bin_name: str = "kubectl"
    timeout_seconds: int = 300

    def require(self, ctx: RunContext) -> str:
        client = self.run(ctx, "version", "--client")
        if not client.ok:
            raise ScriptError("kubectl is required but not available", ERR_PREREQ, kind=KIND_FATAL_SETUP)
        cluster = self.run(ctx, "cluster-info")
        if not cluster.ok:
            raise ScriptError(f"kubernetes cluster is not reachable: {cluster.combined_output}", ERR_PREREQ, kind=KIND_FATAL_SETUP)
        return client.stdout.strip()

    def validate(self, ctx: RunContext, manifests: str) -> None:
        result = self.run(ctx, "apply", "--validate=true", "--dry-run=server", "-f", "-", input_text=manifests)
        if not result.ok:
            raise ScriptError(f"kubectl validation failed: {result.combined_output}", ERR_VALIDATION, kind=KIND_VALIDATION)
