from __future__ import annotations

import re
from typing import Any, Iterable, Sequence

from packaging.version import InvalidVersion, Version

IndexEntry = dict[str, Any]

_SEMVER_CORE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def version_key(version: str) -> Version:
    """Sort key ordering chart versions by numeric semver, pre-releases below their release."""
    text = str(version).strip()
    try:
        return Version(text)
    except InvalidVersion:
        pass
    match = _SEMVER_CORE.match(text)
    if match is None:
        return Version("0")
    major, minor, patch = (int(part or 0) for part in match.groups())
    # unparseable suffix: rank below every PEP 440 pre-release of the same core
    return Version(f"{major}.{minor}.{patch}.dev0") if text[match.end():] else Version(f"{major}.{minor}.{patch}")


def _version(entry: IndexEntry) -> str:
    return str(entry.get("version", ""))


def sort_entries(entries: Iterable[IndexEntry]) -> list[IndexEntry]:
    return sorted(entries, key=lambda entry: version_key(_version(entry)), reverse=True)


def merge_entries(
    chart_name: str,
    fresh: Sequence[IndexEntry],
    existing: Sequence[IndexEntry] | None,
    retention: int,
) -> list[IndexEntry]:
    """Combine ``fresh`` entries of ``chart_name`` with ``existing`` ones.

    The result is sorted newest first, holds each version once (a fresh entry
    replaces an existing one with the same version) and is cut to ``retention``
    entries when ``retention`` is positive.
    """
    if retention < 0:
        raise ValueError(f"retention for {chart_name} must be >= 0, got {retention}")
    combined = list(fresh) if existing is None else [*fresh, *existing]
    seen: set[str] = set()
    merged: list[IndexEntry] = []
    for entry in sort_entries(combined):
        version = _version(entry)
        if version in seen:
            continue
        seen.add(version)
        merged.append(entry)
    return merged[:retention] if retention > 0 else merged


def has_version(entries: Iterable[IndexEntry], version: str) -> bool:
    return any(_version(entry) == version for entry in entries)
