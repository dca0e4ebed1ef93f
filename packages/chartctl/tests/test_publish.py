from __future__ import annotations

from pathlib import Path

import yaml

from chartctl.charts.models import ChartRef
from chartctl.core.errors import ScriptError
from chartctl.github.env import GitHubEnv
from chartctl.index.document import write_index
from chartctl.pages.frontpage import frontpage_charts, generate_frontpage
from chartctl.pages.theme import set_theme
from chartctl.release.publish import oci_remote, publish_chart_pages, publish_oci, write_global_index
from chartctl.templates import TemplateRenderer

from conftest import FakeHelm

WEB = ChartRef("application", "web", "application/web")
COMMON = ChartRef("library", "common", "library/common")


def _packages(tmp_path: Path) -> list[tuple[ChartRef, Path]]:
    web = tmp_path / "web-1.0.0.tgz"
    common = tmp_path / "common-0.1.0.tgz"
    web.write_bytes(b"web")
    common.write_bytes(b"common")
    return [(WEB, web), (COMMON, common)]


def test_oci_remote_is_per_chart_type(make_ctx) -> None:
    assert oci_remote(make_ctx(), "library") == "oci://ghcr.io/acme/charts/library"


def test_oci_push_after_login(make_ctx, tmp_path: Path) -> None:
    helm = FakeHelm()
    published = publish_oci(make_ctx(), helm, _packages(tmp_path))
    assert [item.remote for item in published] == ["oci://ghcr.io/acme/charts/application", "oci://ghcr.io/acme/charts/library"]
    assert helm.pushed == [("web-1.0.0.tgz", "oci://ghcr.io/acme/charts/application"), ("common-0.1.0.tgz", "oci://ghcr.io/acme/charts/library")]


def test_oci_login_failure_skips_publishing(make_ctx, tmp_path: Path) -> None:
    helm = FakeHelm(login_ok=False)
    assert publish_oci(make_ctx(), helm, _packages(tmp_path)) == []
    assert helm.pushed == []


def test_oci_disabled_dry_run_and_missing_token(make_ctx, tmp_path: Path) -> None:
    packages = _packages(tmp_path)
    helm = FakeHelm()
    assert publish_oci(make_ctx(settings={"oci": {"enabled": False}}), helm, packages) == []
    assert publish_oci(make_ctx(dry_run=True), helm, packages) == []
    assert publish_oci(make_ctx(github=GitHubEnv(repository="acme/charts")), helm, packages) == []
    assert helm.calls == []


def test_oci_push_failure_does_not_stop_other_packages(make_ctx, tmp_path: Path) -> None:
    class FlakyHelm(FakeHelm):
        def push(self, ctx, package: Path, remote: str) -> None:
            if package.name.startswith("web"):
                raise ScriptError("push failed")
            super().push(ctx, package, remote)

    published = publish_oci(make_ctx(), FlakyHelm(), _packages(tmp_path))
    assert [item.chart for item in published] == ["library/common"]


def test_chart_pages_and_global_index(make_ctx, chart_writer, tmp_path: Path) -> None:
    web = chart_writer("application/web", "1.1.0")
    common = chart_writer("library/common", "0.1.0")
    chart_writer("application/draft", "0.0.1")
    write_index(web / "metadata.yaml", {"entries": {"web": [{"version": "1.0.0"}, {"version": "1.1.0"}]}})
    write_index(common / "metadata.yaml", {"entries": {"common": [{"version": "0.1.0"}]}})
    ctx = make_ctx()
    site = tmp_path / "_site"
    assert publish_chart_pages(ctx, TemplateRenderer(ctx), site) == 2
    assert yaml.safe_load((site / "application/web/index.yaml").read_text(encoding="utf-8"))["entries"]["web"]
    redirect = (site / "library/common/index.html").read_text(encoding="utf-8")
    assert "https://acme.github.io/charts/#library-common" in redirect
    assert not (site / "application/draft").exists()

    index = yaml.safe_load(write_global_index(ctx, site).read_text(encoding="utf-8"))
    assert list(index["entries"]) == ["common", "web"]
    assert [entry["version"] for entry in index["entries"]["web"]] == ["1.1.0", "1.0.0"]


def test_frontpage_lists_charts_by_type_then_name(make_ctx, chart_writer, tmp_path: Path) -> None:
    chart_writer("library/common", "0.1.0", description="Shared helpers")
    chart_writer("application/web", "1.0.0", description="Web frontend")
    chart_writer("application/api", "2.0.0")
    ctx = make_ctx()
    assert [row["Name"] for row in frontpage_charts(ctx)] == ["api", "web", "common"]
    page = generate_frontpage(ctx, TemplateRenderer(ctx), tmp_path).read_text(encoding="utf-8")
    assert "helm repo add charts https://acme.github.io/charts" in page
    assert "[web](https://github.com/acme/charts/tree/main/application/web) | application | 1.0.0 | Web frontend |" in page
    assert "No charts available" not in page


def test_frontpage_creates_missing_output_directory(make_ctx, chart_writer, tmp_path: Path) -> None:
    chart_writer("application/web", "1.0.0")
    ctx = make_ctx()
    path = generate_frontpage(ctx, TemplateRenderer(ctx), tmp_path / "build/site")
    assert path == tmp_path / "build/site/index.md"
    assert "web" in path.read_text(encoding="utf-8")


def test_theme_copies_files_and_sets_publish_output(make_ctx, tmp_path: Path) -> None:
    templates = tmp_path / ".github/actions/templates"
    templates.mkdir(parents=True)
    (templates / "config.yml").write_text("theme: minima\n", encoding="utf-8")
    (templates / "layout.html").write_text("<html></html>\n", encoding="utf-8")
    outputs = tmp_path / "github_output"
    env = GitHubEnv(repository="acme/charts", token="t", output_path=str(outputs))
    site = tmp_path / "site"
    result = set_theme(make_ctx(github=env), site)
    assert result.copied == ["_config.yml", "_layouts/default.html"]
    assert result.missing == [".github/actions/templates/head-custom.html"]
    assert result.publish is True
    assert (site / "_config.yml").read_text(encoding="utf-8") == "theme: minima\n"
    assert outputs.read_text(encoding="utf-8") == "publish=true\n"


def test_theme_does_not_publish_staging_or_private(make_ctx, tmp_path: Path) -> None:
    (tmp_path / "_config.src.yml").write_text("{}\n", encoding="utf-8")
    staging = make_ctx(settings={"release": {"deployment": "staging"}, "theme": {"configuration": "_config.src.yml"}})
    assert set_theme(staging, tmp_path / "site").publish is False
    private = GitHubEnv(repository="acme/charts", event={"repository": {"private": True}})
    ctx = make_ctx(github=private, settings={"theme": {"configuration": "_config.src.yml"}})
    assert set_theme(ctx, tmp_path / "site2").publish is False
