from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.config import CHART_TYPES


@dataclass(frozen=True)
class ChartRef:
    type: str
    name: str
    directory: str

    @property
    def identity(self) -> tuple[str, str]:
        return (self.type, self.name)

    @property
    def label(self) -> str:
        return f"{self.type}/{self.name}"

    def path(self, repo_root: Path) -> Path:
        return repo_root / self.directory

    @classmethod
    def from_directory(cls, chart_type: str, directory: str) -> "ChartRef":
        return cls(type=chart_type, name=Path(directory).name, directory=directory)


@dataclass(frozen=True)
class ChartSet:
    application: tuple[str, ...] = ()
    library: tuple[str, ...] = ()
    deleted: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return len(self.application) + len(self.library)

    def directories(self, chart_type: str) -> tuple[str, ...]:
        return self.application if chart_type == "application" else self.library

    def refs(self) -> list[ChartRef]:
        return [ChartRef.from_directory(chart_type, d) for chart_type in CHART_TYPES for d in self.directories(chart_type)]

    def all_directories(self) -> list[str]:
        return [*self.application, *self.library]

    def to_payload(self) -> dict[str, Any]:
        return {
            "application": list(self.application),
            "library": list(self.library),
            "deleted": list(self.deleted),
            "total": self.total,
        }
