from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Protocol

from ..core.errors import ScriptError
from ..core.logging import log_event

if TYPE_CHECKING:
    from ..core.context import RunContext


class LabelHost(Protocol):
    def get_label(self, name: str) -> dict[str, Any] | None: ...

    def create_label(self, name: str, color: str, description: str) -> None: ...


def ensure_label(ctx: RunContext, host: LabelHost, name: str) -> bool:
    """Create ``name`` from its configured definition when missing; returns whether it was created."""
    if host.get_label(name) is not None:
        return False
    label = ctx.config.issue.label(name)
    if label is None:
        log_event(ctx, "warning", "labels", "create", label=name, message="label has no configured definition")
        return False
    if ctx.dry_run:
        log_event(ctx, "info", "labels", "create", label=name, dry_run=True)
        return False
    host.create_label(label.name, label.color, label.description)
    return True


def update_labels(ctx: RunContext, host: LabelHost, names: Iterable[str] | None = None) -> list[str]:
    if not ctx.config.issue.create_labels:
        log_event(ctx, "info", "labels", "update", message="label creation is disabled")
        return []
    log_event(ctx, "warning", "labels", "update", message="disable issue.create_labels after the initial repository setup")
    wanted = list(names) if names is not None else [label.name for label in ctx.config.issue.labels]
    created: list[str] = []
    for name in wanted:
        try:
            if ensure_label(ctx, host, name):
                created.append(name)
        except ScriptError as exc:
            log_event(ctx, "warning", "labels", "create", label=name, error=exc.message)
    log_event(ctx, "info", "labels", "update", created=len(created))
    return created
