"""Typed, validated chartctl configuration.

The configuration is assembled once per process: packaged defaults, then the
optional YAML file, then ``CHARTCTL_*`` environment overrides. The merged
mapping is validated against ``schemas/config.schema.json`` before being frozen
into :class:`ChartsConfig`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import jsonschema
import yaml

from ..schemas import load_schema
from .errors import KIND_CONFIG, ScriptError
from .exit_codes import ERR_CONFIG

CHART_TYPES = ("application", "library")
DEFAULT_CONFIG_PATH = ".github/chartctl.yaml"

DEFAULT_SETTINGS: dict[str, Any] = {
    "chart": {
        "types": {"application": "application", "library": "library"},
        "icon": "icon.png",
        "packages": {"enabled": True, "retention": 10},
    },
    "release": {
        "tag_template": "{name}-{version}",
        "packages": ".cr-release-packages",
        "deployment": "production",
        "template": None,
    },
    "oci": {"enabled": True, "registry": "ghcr.io"},
    "issue": {
        "create_labels": False,
        "labels": {
            "application": {"color": "0366d6", "description": "Application chart type related"},
            "blocked": {"color": "d93f0b", "description": "Not ready due to unresolved issues"},
            "dependency": {"color": "00008b", "description": "Dependency version update"},
            "feature": {"color": "4169e1", "description": "Additions of new functionality"},
            "library": {"color": "8732a8", "description": "Library chart type related"},
            "triage": {"color": "30783f", "description": "Needs triage"},
            "workflow": {"color": "b84cfd", "description": "Workflow execution related"},
        },
    },
    "repository": {
        "url": "",
        "user": {
            "name": "github-actions[bot]",
            "email": "41898282+github-actions[bot]@users.noreply.github.com",
        },
    },
    "theme": {
        "configuration": ".github/actions/templates/config.yml",
        "head": ".github/actions/templates/head-custom.html",
        "layout": ".github/actions/templates/layout.html",
        "frontpage": None,
        "redirect": None,
    },
    "workflow": {
        "docs_log_level": "info",
        "labels": ["bug", "triage", "workflow"],
        "title": "workflow: Issues Detected",
        "template": None,
    },
}

# env var -> (section path, coercion)
_ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], str]] = {
    "CHARTCTL_RETENTION": (("chart", "packages", "retention"), "int"),
    "CHARTCTL_PACKAGES_ENABLED": (("chart", "packages", "enabled"), "bool"),
    "CHARTCTL_TAG_TEMPLATE": (("release", "tag_template"), "str"),
    "CHARTCTL_DEPLOYMENT": (("release", "deployment"), "str"),
    "CHARTCTL_OCI_ENABLED": (("oci", "enabled"), "bool"),
    "CHARTCTL_OCI_REGISTRY": (("oci", "registry"), "str"),
    "CHARTCTL_CREATE_LABELS": (("issue", "create_labels"), "bool"),
    "CHARTCTL_REPOSITORY_URL": (("repository", "url"), "str"),
}


@dataclass(frozen=True)
class LabelConfig:
    name: str
    color: str
    description: str


@dataclass(frozen=True)
class ChartSection:
    application_root: str
    library_root: str
    icon: str
    packages_enabled: bool
    retention: int

    @property
    def type_roots(self) -> dict[str, str]:
        return {"application": self.application_root, "library": self.library_root}

    def root(self, chart_type: str) -> str:
        try:
            return self.type_roots[chart_type]
        except KeyError:
            raise ScriptError(f"unknown chart type: {chart_type}", ERR_CONFIG, kind=KIND_CONFIG) from None


@dataclass(frozen=True)
class ReleaseSection:
    tag_template: str
    packages_dir: str
    deployment: str
    template: str | None


@dataclass(frozen=True)
class OciSection:
    enabled: bool
    registry: str


@dataclass(frozen=True)
class IssueSection:
    create_labels: bool
    labels: tuple[LabelConfig, ...]

    def label(self, name: str) -> LabelConfig | None:
        return next((label for label in self.labels if label.name == name), None)


@dataclass(frozen=True)
class RepositorySection:
    url: str
    user_name: str
    user_email: str


@dataclass(frozen=True)
class ThemeSection:
    configuration: str
    head: str
    layout: str
    frontpage: str | None
    redirect: str | None


@dataclass(frozen=True)
class WorkflowSection:
    docs_log_level: str
    labels: tuple[str, ...]
    title: str
    template: str | None


@dataclass(frozen=True)
class ChartsConfig:
    chart: ChartSection
    release: ReleaseSection
    oci: OciSection
    issue: IssueSection
    repository: RepositorySection
    theme: ThemeSection
    workflow: WorkflowSection
    source: str = "defaults"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source: str = "defaults") -> "ChartsConfig":
        validate_settings(data, source)
        chart = data["chart"]
        release = data["release"]
        issue = data["issue"]
        repository = data["repository"]
        theme = data["theme"]
        workflow = data["workflow"]
        return cls(
            chart=ChartSection(
                application_root=chart["types"]["application"],
                library_root=chart["types"]["library"],
                icon=chart["icon"],
                packages_enabled=chart["packages"]["enabled"],
                retention=chart["packages"]["retention"],
            ),
            release=ReleaseSection(
                tag_template=release["tag_template"],
                packages_dir=release["packages"],
                deployment=release["deployment"],
                template=release.get("template"),
            ),
            oci=OciSection(enabled=data["oci"]["enabled"], registry=data["oci"]["registry"]),
            issue=IssueSection(
                create_labels=issue["create_labels"],
                labels=tuple(
                    LabelConfig(name=name, color=definition["color"], description=definition["description"])
                    for name, definition in sorted(issue["labels"].items())
                ),
            ),
            repository=RepositorySection(
                url=repository["url"],
                user_name=repository["user"]["name"],
                user_email=repository["user"]["email"],
            ),
            theme=ThemeSection(
                configuration=theme["configuration"],
                head=theme["head"],
                layout=theme["layout"],
                frontpage=theme.get("frontpage"),
                redirect=theme.get("redirect"),
            ),
            workflow=WorkflowSection(
                docs_log_level=workflow["docs_log_level"],
                labels=tuple(workflow["labels"]),
                title=workflow["title"],
                template=workflow.get("template"),
            ),
            source=source,
        )


def validate_settings(data: Mapping[str, Any], source: str) -> None:
    try:
        jsonschema.validate(dict(data), load_schema("config.schema.json"))
    except jsonschema.ValidationError as exc:
        pointer = "/".join(str(p) for p in exc.absolute_path)
        loc = pointer or "<root>"
        raise ScriptError(f"invalid configuration in {source} at {loc}: {exc.message}", ERR_CONFIG, kind=KIND_CONFIG) from exc


def merge_settings(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _coerce(name: str, raw: str, kind: str) -> object:
    if kind == "int":
        try:
            return int(raw)
        except ValueError:
            raise ScriptError(f"{name} must be an integer, got `{raw}`", ERR_CONFIG, kind=KIND_CONFIG) from None
    if kind == "bool":
        lowered = raw.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ScriptError(f"{name} must be a boolean, got `{raw}`", ERR_CONFIG, kind=KIND_CONFIG)
    return raw


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name, (path, kind) in sorted(_ENV_OVERRIDES.items()):
        if name not in environ:
            continue
        node = overrides
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = _coerce(name, environ[name], kind)
    return overrides


def load_config(
    repo_root: Path,
    config_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ChartsConfig:
    settings = copy.deepcopy(DEFAULT_SETTINGS)
    sources = ["defaults"]
    path = Path(config_path) if config_path else repo_root / DEFAULT_CONFIG_PATH
    if not path.is_absolute():
        path = repo_root / path
    if path.is_file():
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ScriptError(f"cannot parse configuration {path}: {exc}", ERR_CONFIG, kind=KIND_CONFIG) from exc
        if not isinstance(payload, dict):
            raise ScriptError(f"configuration root must be a mapping: {path}", ERR_CONFIG, kind=KIND_CONFIG)
        settings = merge_settings(settings, payload)
        sources.append(str(path))
    elif config_path:
        raise ScriptError(f"configuration file not found: {path}", ERR_CONFIG, kind=KIND_CONFIG)
    overrides = env_overrides(environ or {})
    if overrides:
        settings = merge_settings(settings, overrides)
        sources.append("env")
    return ChartsConfig.from_mapping(settings, source="+".join(sources))
