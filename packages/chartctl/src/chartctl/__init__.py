__version__ = "0.1.0"

__all__ = [
    "__version__",
    "adapters",
    "charts",
    "cli",
    "core",
    "docs",
    "git",
    "github",
    "index",
    "issues",
    "pages",
    "release",
    "templates",
]
