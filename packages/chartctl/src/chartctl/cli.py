from __future__ import annotations

import argparse
import json
import sys

from . import __version__
from .charts.command import configure_charts_parser, configure_discover_parser, run_charts_command, run_discover
from .core.context import RunContext
from .core.errors import ScriptError
from .core.exit_codes import ERR_INTERNAL
from .core.logging import log_event
from .core.output import SCHEMA_VERSION, TOOL, build_payload, emit
from .docs.command import configure_docs_parser, run_docs_command
from .git.command import configure_git_parser, run_git_command
from .issues.command import configure_issue_parser, configure_labels_parser, run_issue_command, run_labels_command
from .pages.command import configure_pages_parser, run_pages_command
from .release.command import configure_release_parser, run_release_command

COMMANDS = {
    "charts": run_charts_command,
    "discover": run_discover,
    "docs": run_docs_command,
    "git": run_git_command,
    "issue": run_issue_command,
    "labels": run_labels_command,
    "pages": run_pages_command,
    "release": run_release_command,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="chartctl", description="Helm chart repository automation")
    p.add_argument("--config", default=None, help="configuration file (default: .github/chartctl.yaml when present)")
    p.add_argument("--run-id", help="run identifier for logs and payloads")
    p.add_argument("--format", choices=["text", "json"], default="text", help="output format")
    p.add_argument("--log-json", action="store_true", help="emit structured logs as JSON lines")
    p.add_argument("--dry-run", action="store_true", help="skip commits, OCI pushes, label and issue creation")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="enable debug logs")
    vg.add_argument("--quiet", action="store_true", help="only emit warnings and errors")
    sub = p.add_subparsers(dest="cmd", required=True)
    configure_discover_parser(sub)
    configure_charts_parser(sub)
    configure_docs_parser(sub)
    configure_release_parser(sub)
    configure_pages_parser(sub)
    configure_labels_parser(sub)
    configure_issue_parser(sub)
    configure_git_parser(sub)
    sub.add_parser("version", help="print the chartctl version")
    return p


def _error(fmt: str, message: str, code: int, kind: str) -> None:
    if fmt == "json":
        envelope = {
            "schema_version": SCHEMA_VERSION,
            "tool": TOOL,
            "status": "fail",
            "error": {"message": message, "code": code, "kind": kind},
        }
        print(json.dumps(envelope, sort_keys=True), file=sys.stderr)
    else:
        print(message, file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    ns = build_parser().parse_args(argv)
    try:
        ctx = RunContext.from_args(
            run_id=ns.run_id,
            config_path=ns.config,
            output_format=ns.format,
            verbose=ns.verbose,
            quiet=ns.quiet,
            log_json=ns.log_json,
            dry_run=ns.dry_run,
        )
        log_event(ctx, "debug", "cli", "start", cmd=ns.cmd, fmt=ctx.output_format, config=ctx.config.source)
        if ns.cmd == "version":
            return emit(ctx, build_payload(ctx, "version", True, version=__version__), __version__)
        return COMMANDS[ns.cmd](ctx, ns)
    except ScriptError as exc:
        _error(ns.format, str(exc), exc.code, exc.kind)
        return exc.code
    except Exception as exc:  # pragma: no cover
        _error(ns.format, f"internal error: {exc}", ERR_INTERNAL, "internal_error")
        return ERR_INTERNAL


if __name__ == "__main__":
    raise SystemExit(main())
