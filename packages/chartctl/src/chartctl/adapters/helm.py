"""Helm CLI bindings used by the chart and release workflows."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..core.errors import KIND_FATAL_SETUP, KIND_TRANSIENT, KIND_VALIDATION, ScriptError
from ..core.exit_codes import ERR_ARTIFACT, ERR_PREREQ, ERR_VALIDATION
from ._base import CliAdapter

if TYPE_CHECKING:
    from ..core.context import RunContext

_PACKAGED = re.compile(r"Successfully packaged chart and saved it to:\s*(\S+)")


@dataclass(frozen=True)
class HelmCli(CliAdapter):
    bin_name: str = "helm"
    timeout_seconds: int = 600

    def lint(self, ctx: RunContext, directory: Path, strict: bool = True) -> None:
        args = ["lint", str(directory)]
        if strict:
            args.append("--strict")
        result = self.run(ctx, *args)
        if not result.ok:
            raise ScriptError(f"helm lint failed for {directory}: {result.combined_output}", ERR_VALIDATION, kind=KIND_VALIDATION)

    def dependency_update(self, ctx: RunContext, directory: Path) -> None:
        result = self.run(ctx, "dependency", "update", str(directory), retries=2)
        if not result.ok:
            raise ScriptError(
                f"helm dependency update failed for {directory}: {result.combined_output}", ERR_ARTIFACT, kind=KIND_TRANSIENT
            )

    def package(self, ctx: RunContext, directory: Path, destination: Path) -> Path:
        result = self.run(ctx, "package", str(directory), "--destination", str(destination))
        if not result.ok:
            raise ScriptError(f"helm package failed for {directory}: {result.combined_output}", ERR_ARTIFACT, kind=KIND_TRANSIENT)
        match = _PACKAGED.search(result.stdout)
        if match is None:
            raise ScriptError(f"helm package produced no artifact path for {directory}", ERR_ARTIFACT, kind=KIND_TRANSIENT)
        return Path(match.group(1))

    def repo_index(self, ctx: RunContext, directory: Path, url: str | None = None, merge: Path | None = None) -> None:
        args = ["repo", "index", str(directory)]
        if url:
            args.extend(["--url", url])
        if merge is not None:
            args.extend(["--merge", str(merge)])
        result = self.run(ctx, *args)
        if not result.ok:
            raise ScriptError(f"helm repo index failed for {directory}: {result.combined_output}", ERR_ARTIFACT, kind=KIND_TRANSIENT)

    def template(self, ctx: RunContext, directory: Path) -> str:
        result = self.run(ctx, "template", str(directory))
        if not result.ok:
            raise ScriptError(f"helm template failed for {directory}: {result.combined_output}", ERR_VALIDATION, kind=KIND_VALIDATION)
        return result.stdout

    def registry_login(self, ctx: RunContext, registry: str, username: str, password: str) -> bool:
        result = self.run(ctx, "registry", "login", registry, "-u", username, "--password-stdin", input_text=password)
        return result.ok

    def push(self, ctx: RunContext, package: Path, remote: str) -> None:
        result = self.run(ctx, "push", str(package), remote, retries=2)
        if not result.ok:
            raise ScriptError(f"helm push failed for {package.name}: {result.combined_output}", ERR_ARTIFACT, kind=KIND_TRANSIENT)

    def require(self, ctx: RunContext) -> str:
        result = self.run(ctx, "version", "--short")
        if not result.ok:
            raise ScriptError("helm is required but not available", ERR_PREREQ, kind=KIND_FATAL_SETUP)
        return result.stdout.strip()
