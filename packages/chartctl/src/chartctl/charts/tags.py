from __future__ import annotations

import re

_PLACEHOLDER = re.compile(r"\{(name|version)\}")


def format_tag(template: str, name: str, version: str) -> str:
    """Substitute ``{name}`` and ``{version}`` in ``template``; any other text is kept as is."""
    values = {"name": name, "version": version}
    return _PLACEHOLDER.sub(lambda match: values[match.group(1)], template)


def tag_prefix(template: str, name: str) -> str:
    """Literal tag text preceding the version, used to find a chart's previous releases."""
    head = template.split("{version}", 1)[0]
    return format_tag(head, name, "")


_VERSION_TEXT = r"v?\d+(?:\.\d+)*(?:[-+][0-9A-Za-z.+-]*)?"


def tag_matcher(template: str, name: str) -> re.Pattern[str]:
    """Pattern matching the tags ``template`` produces for chart ``name``, whatever the version."""
    parts: list[str] = []
    position = 0
    for match in _PLACEHOLDER.finditer(template):
        parts.append(re.escape(template[position:match.start()]))
        parts.append(re.escape(name) if match.group(1) == "name" else _VERSION_TEXT)
        position = match.end()
    parts.append(re.escape(template[position:]))
    return re.compile("".join(parts))


def is_chart_tag(template: str, name: str, tag: str) -> bool:
    """True when ``tag`` is a release of chart ``name``; ``redis-ha-2.0.0`` is not a ``redis`` tag."""
    return tag_matcher(template, name).fullmatch(tag) is not None
