from __future__ import annotations

from typing import Iterable, Mapping


def _chart_dir(path: str, root: str) -> str | None:
    prefix = root.rstrip("/") + "/"
    if not path.startswith(prefix):
        return None
    segments = path[len(prefix):].split("/")
    # root/chart/<something>: the chart segment must be followed by at least one more
    if len(segments) < 2 or not segments[0]:
        return None
    return f"{prefix}{segments[0]}"


def match_chart_paths(changed_paths: Iterable[str], type_roots: Mapping[str, str]) -> set[str]:
    """Map changed file paths to ``type:root/chart`` candidates."""
    matches: set[str] = set()
    for path in changed_paths:
        for chart_type, root in type_roots.items():
            chart_dir = _chart_dir(path, root)
            if chart_dir is not None:
                matches.add(f"{chart_type}:{chart_dir}")
    return matches


def split_candidate(candidate: str) -> tuple[str, str]:
    chart_type, _, directory = candidate.partition(":")
    return chart_type, directory
