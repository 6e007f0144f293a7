"""Top-level package for the Bitcoin network monitor."""

__all__ = [
    "config",
    "data",
    "metrics",
    "scheduler",
    "monitoring",
    "view",
]
