from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from chartctl.charts.tags import format_tag, is_chart_tag, tag_prefix


@pytest.mark.unit
def test_formats_name_and_version() -> None:
    assert format_tag("{name}-v{version}", "redis", "7.2.1") == "redis-v7.2.1"
    assert format_tag("{name}-{version}", "nginx", "1.0.0-rc.1") == "nginx-1.0.0-rc.1"


@pytest.mark.unit
def test_unknown_braces_are_kept() -> None:
    assert format_tag("{chart}/{name}@{version}{", "a", "1") == "{chart}/a@1{"


@pytest.mark.unit
def test_substituted_values_are_not_expanded_again() -> None:
    assert format_tag("{name}-{version}", "{version}", "{name}") == "{version}-{name}"


@pytest.mark.unit
@given(st.text(), st.text(), st.text())
def test_formatter_is_total(template: str, name: str, version: str) -> None:
    result = format_tag(template, name, version)
    assert isinstance(result, str)
    if "{" not in template:
        assert result == template


@pytest.mark.unit
@given(st.text(alphabet=st.characters(blacklist_characters="{}"), max_size=20))
def test_plain_template_round_trip(name: str) -> None:
    assert format_tag("{name}", name, "x") == name


@pytest.mark.unit
def test_tag_prefix_stops_at_version() -> None:
    assert tag_prefix("{name}-{version}", "redis") == "redis-"
    assert tag_prefix("charts/{name}/v{version}", "redis") == "charts/redis/v"
    assert tag_prefix("{name}", "redis") == "redis"


@pytest.mark.unit
def test_chart_tags_need_a_version_after_the_name() -> None:
    assert is_chart_tag("{name}-{version}", "redis", "redis-1.0.0")
    assert is_chart_tag("{name}-{version}", "redis", "redis-1.0.0-rc.1")
    assert not is_chart_tag("{name}-{version}", "redis", "redis-ha-2.0.0")
    assert is_chart_tag("{name}-{version}", "redis-ha", "redis-ha-2.0.0")
    assert is_chart_tag("charts/{name}/v{version}", "redis", "charts/redis/v7.2.1")
    assert not is_chart_tag("charts/{name}/v{version}", "redis", "charts/redis-ha/v7.2.1")
