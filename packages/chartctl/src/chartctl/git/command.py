from __future__ import annotations

import argparse

from ..core.context import RunContext
from ..core.git import GitService
from ..core.logging import log_event
from ..core.output import build_payload, emit


def run_git_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.git_cmd != "configure":
        return 2
    user = ctx.config.repository
    GitService(ctx).configure(user.user_name, user.user_email)
    log_event(ctx, "info", "git", "configure", name=user.user_name, email=user.user_email)
    payload = build_payload(ctx, "git-configure", True, name=user.user_name, email=user.user_email)
    return emit(ctx, payload, f"{user.user_name} <{user.user_email}>")


def configure_git_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("git", help="git repository setup")
    p_sub = p.add_subparsers(dest="git_cmd", required=True)
    p_sub.add_parser("configure", help="set the commit identity from repository.user")
