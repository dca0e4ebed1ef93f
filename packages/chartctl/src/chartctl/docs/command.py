from __future__ import annotations

import argparse

from ..adapters import helm_docs
from ..charts.command import make_committer
from ..core.context import RunContext
from ..core.git import GitService
from ..core.output import build_payload, emit
from .generate import generate_docs


def run_docs_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.docs_cmd != "generate":
        return 2
    git = GitService(ctx)
    result = generate_docs(ctx, helm_docs, git, make_committer(ctx, git), ns.directories)
    payload = build_payload(ctx, "docs-generate", result.ok, **result.to_payload())
    return emit(ctx, payload, f"files={len(result.files)} committed={result.committed}")


def configure_docs_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("docs", help="chart documentation commands")
    p_sub = p.add_subparsers(dest="docs_cmd", required=True)
    gen = p_sub.add_parser("generate", help="run helm-docs and commit updated READMEs")
    gen.add_argument("directories", nargs="*", default=[], help="chart directories (default: all charts)")
