"""Read, build and write Helm repository index documents (``index.yaml``/``metadata.yaml``)."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping

from ..charts.tags import format_tag
from ..core.fs import load_yaml_mapping, write_yaml
from ..core.logging import utc_now_iso
from .merge import IndexEntry, merge_entries

API_VERSION = "v1"
INDEX_FILE = "index.yaml"
METADATA_FILE = "metadata.yaml"


def new_index(entries: Mapping[str, list[IndexEntry]] | None = None) -> dict[str, Any]:
    return {"apiVersion": API_VERSION, "entries": dict(entries or {}), "generated": utc_now_iso()}


def load_index(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    data = load_yaml_mapping(path)
    entries = data.get("entries")
    data["entries"] = entries if isinstance(entries, dict) else {}
    data.setdefault("apiVersion", API_VERSION)
    return data


def chart_entries(index: Mapping[str, Any] | None, name: str) -> list[IndexEntry] | None:
    if index is None:
        return None
    entries = index.get("entries", {}).get(name)
    return list(entries) if isinstance(entries, list) else None


def write_index(path: Path, index: Mapping[str, Any]) -> Path:
    payload = dict(index)
    payload["apiVersion"] = payload.get("apiVersion", API_VERSION)
    payload["generated"] = utc_now_iso()
    return write_yaml(path, payload)


def release_download_base(html_url: str) -> str:
    return f"{html_url.rstrip('/')}/releases/download"


def rewrite_entry_urls(
    entries: Iterable[IndexEntry],
    name: str,
    chart_type: str,
    base_url: str,
    tag_template: str,
) -> list[IndexEntry]:
    """Point each entry at its release asset ``<base>/<tag>/<type>.tgz``."""
    rewritten: list[IndexEntry] = []
    for entry in entries:
        tag = format_tag(tag_template, name, str(entry.get("version", "")))
        rewritten.append({**entry, "urls": [f"{base_url}/{tag}/{chart_type}.tgz"]})
    return rewritten


def update_chart_index(
    path: Path,
    name: str,
    fresh: list[IndexEntry],
    retention: int,
) -> dict[str, Any]:
    """Merge ``fresh`` entries into the chart's index file at ``path`` and persist it."""
    existing = load_index(path)
    index = existing if existing is not None else new_index()
    index["entries"][name] = merge_entries(name, fresh, chart_entries(existing, name), retention)
    write_index(path, index)
    return index


def build_global_index(metadata_files: Iterable[Path], retention: int) -> dict[str, Any]:
    """Combine every chart's ``metadata.yaml`` entries into one repository index."""
    entries: dict[str, list[IndexEntry]] = {}
    for path in sorted(metadata_files):
        index = load_index(path)
        if index is None:
            continue
        for name, chart in sorted(index["entries"].items()):
            if isinstance(chart, list):
                entries[name] = merge_entries(name, chart, entries.get(name), retention)
    return new_index(dict(sorted(entries.items())))
