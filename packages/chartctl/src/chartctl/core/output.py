from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .context import RunContext

SCHEMA_VERSION = 1
TOOL = "chartctl"


def build_payload(ctx: RunContext, kind: str, ok: bool, **fields: Any) -> dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "tool": TOOL,
        "kind": kind,
        "run_id": ctx.run_id,
        "status": "ok" if ok else "error",
        **fields,
    }


def emit(ctx: RunContext, payload: dict[str, Any], summary: str) -> int:
    """Print ``payload`` as JSON or ``summary`` as text; returns the command exit code."""
    if ctx.output_format == "json":
        print(json.dumps(payload, sort_keys=True, default=str))
    else:
        print(f"{payload['kind']}: {payload['status']} {summary}".rstrip())
    return 0 if payload["status"] == "ok" else 1
