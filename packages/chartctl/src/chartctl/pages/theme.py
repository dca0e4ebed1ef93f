from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ..core.errors import KIND_FATAL_SETUP, ScriptError
from ..core.exit_codes import ERR_CONFIG
from ..core.logging import log_event
from ..github.env import set_output

if TYPE_CHECKING:
    from ..core.context import RunContext


@dataclass
class ThemeResult:
    copied: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    publish: bool = False


def _copy(ctx: RunContext, source: str, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(ctx.repo_root / source, target)


def should_publish(ctx: RunContext) -> bool:
    return not ctx.github.is_private and ctx.config.release.deployment == "production"


def set_theme(ctx: RunContext, output_root: Path) -> ThemeResult:
    """Copy the Jekyll config, head include and layout; only the config is required."""
    theme = ctx.config.theme
    result = ThemeResult()
    try:
        _copy(ctx, theme.configuration, output_root / "_config.yml")
    except OSError as exc:
        raise ScriptError(f"cannot copy Jekyll config {theme.configuration}: {exc}", ERR_CONFIG, kind=KIND_FATAL_SETUP) from exc
    result.copied.append("_config.yml")
    for source, target in ((theme.head, "_includes/head-custom.html"), (theme.layout, "_layouts/default.html")):
        try:
            _copy(ctx, source, output_root / target)
        except OSError as exc:
            log_event(ctx, "warning", "pages", "theme", file=source, error=str(exc))
            result.missing.append(source)
            continue
        result.copied.append(target)
    result.publish = should_publish(ctx)
    set_output(ctx, "publish", result.publish)
    log_event(ctx, "info", "pages", "theme", deployment=ctx.config.release.deployment, publish=result.publish)
    return result
