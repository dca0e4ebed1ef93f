from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def schemas_root() -> Path:
    return Path(__file__).resolve().parent


def load_schema(name: str) -> dict[str, Any]:
    return json.loads((schemas_root() / name).read_text(encoding="utf-8"))
