from __future__ import annotations

import argparse
from pathlib import Path

from ..core.context import RunContext
from ..core.output import build_payload, emit
from ..templates import TemplateRenderer
from .frontpage import generate_frontpage
from .theme import set_theme


def _output_root(ctx: RunContext, ns: argparse.Namespace) -> Path:
    return Path(ns.output).resolve() if ns.output else ctx.repo_root


def run_pages_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    output_root = _output_root(ctx, ns)
    if ns.pages_cmd == "frontpage":
        path = generate_frontpage(ctx, TemplateRenderer(ctx), output_root)
        return emit(ctx, build_payload(ctx, "pages-frontpage", True, path=str(path)), str(path))
    if ns.pages_cmd == "theme":
        result = set_theme(ctx, output_root)
        payload = build_payload(ctx, "pages-theme", True, copied=result.copied, missing=result.missing, publish=result.publish)
        return emit(ctx, payload, f"publish={str(result.publish).lower()}")
    return 2


def configure_pages_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("pages", help="GitHub Pages build inputs")
    p_sub = p.add_subparsers(dest="pages_cmd", required=True)
    for name, help_text in (("frontpage", "render the chart listing to index.md"), ("theme", "install Jekyll theme files")):
        cmd = p_sub.add_parser(name, help=help_text)
        cmd.add_argument("--output", default=None, help="output directory (default: repository root)")
