from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import ERR_GITHUB, ERR_INTERNAL, ERR_VALIDATION

KIND_VALIDATION = "validation_failure"
KIND_TRANSIENT = "transient_io_failure"
KIND_CONFLICT = "conflict"
KIND_FATAL_SETUP = "fatal_setup"
KIND_CONFIG = "config_error"


@dataclass
class ScriptError(Exception):
    message: str
    code: int = ERR_INTERNAL
    kind: str = "generic_error"

    def __str__(self) -> str:
        return self.message


@dataclass
class GitHubApiError(ScriptError):
    code: int = ERR_GITHUB
    kind: str = KIND_TRANSIENT
    status: int | None = None


@dataclass
class TemplateError(ScriptError):
    code: int = ERR_VALIDATION
    kind: str = "template_error"
