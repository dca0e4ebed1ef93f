from __future__ import annotations

import inspect
import json
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .context import RunContext

_ANNOTATED_LEVELS = {"warning", "error"}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def log_event(ctx: RunContext, level: str, component: str, action: str, **fields: object) -> None:
    if ctx.quiet and level in {"debug", "info"}:
        return
    if level == "debug" and not ctx.verbose:
        return
    caller = inspect.stack(0)[1]
    payload = {
        "ts": utc_now_iso(),
        "level": level,
        "run_id": ctx.run_id,
        "component": component,
        "action": action,
        "file": caller.filename,
        "line": caller.lineno,
        **fields,
    }
    if ctx.log_json:
        sys.stderr.write(json.dumps(payload, sort_keys=True, default=str) + "\n")
    else:
        core = f"ts={payload['ts']} level={level} run_id={ctx.run_id} component={component} action={action}"
        extras = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        sys.stderr.write((core if not extras else f"{core} {extras}") + "\n")
    if ctx.github.actions and level in _ANNOTATED_LEVELS:
        message = fields.get("message") or fields.get("error") or action
        sys.stdout.write(f"::{level}::{component}: {message}\n")
