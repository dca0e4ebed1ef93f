from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Iterable

from ..charts.models import ChartRef
from ..charts.tags import is_chart_tag, tag_prefix
from ..core.errors import ScriptError
from ..core.logging import log_event
from ..github.graphql import GraphQLClient, IssueNode
from ..templates import RELEASE_TEMPLATE, TemplateRenderer

if TYPE_CHECKING:
    from ..core.context import RunContext


def chart_issues(issues: Iterable[IssueNode], chart: ChartRef) -> list[IssueNode]:
    """Issues whose body names the chart (``chart: <name>``) and that carry the chart type label."""
    pattern = re.compile(rf"chart:\s*{re.escape(chart.name)}\b", re.IGNORECASE)
    return [issue for issue in issues if pattern.search(issue.body_text) and chart.type in issue.labels]


class ReleaseNotes:
    def __init__(self, ctx: RunContext, renderer: TemplateRenderer, graphql: GraphQLClient | None = None) -> None:
        self.ctx = ctx
        self.renderer = renderer
        self.graphql = graphql
        self.source = renderer.load(ctx.config.release.template, RELEASE_TEMPLATE)

    def issues(self, chart: ChartRef) -> list[dict[str, Any]]:
        if self.graphql is None:
            return []
        try:
            template = self.ctx.config.release.tag_template
            previous = self.graphql.releases(
                prefix=tag_prefix(template, chart.name),
                limit=1,
                accept=lambda tag: is_chart_tag(template, chart.name, tag),
            )
            since = previous[0].created_at if previous else None
            found = chart_issues(self.graphql.issues(since=since), chart)
        except ScriptError as exc:
            log_event(self.ctx, "warning", "release", "issues", chart=chart.label, error=exc.message)
            return []
        log_event(self.ctx, "info", "release", "issues", chart=chart.label, count=len(found))
        return [issue.to_template() for issue in found]

    def context(self, chart: ChartRef, metadata: dict[str, Any], tag: str) -> dict[str, Any]:
        repo_url = self.ctx.github.html_url
        source = f"{repo_url}/blob/{tag}/{chart.directory}/Chart.yaml"
        icon = self.ctx.config.chart.icon
        issues = self.issues(chart)
        return {
            "AppVersion": metadata.get("appVersion") or "",
            "Branch": self.ctx.github.default_branch,
            "Dependencies": [
                {
                    "Name": dependency.get("name", ""),
                    "Repository": dependency.get("repository", ""),
                    "Source": source,
                    "Version": dependency.get("version", ""),
                }
                for dependency in metadata.get("dependencies") or []
            ],
            "Description": metadata.get("description") or "",
            "Icon": icon if (chart.path(self.ctx.repo_root) / icon).is_file() else None,
            "Issues": issues or None,
            "KubeVersion": metadata.get("kubeVersion") or "",
            "Name": chart.name,
            "Path": chart.directory,
            "RepoURL": repo_url,
            "Type": chart.type,
            "Version": str(metadata.get("version", "")),
        }

    def __call__(self, chart: ChartRef, metadata: dict[str, Any], tag: str) -> str:
        return self.renderer.render(self.source, self.context(chart, metadata, tag), repo_url=self.ctx.github.html_url)
