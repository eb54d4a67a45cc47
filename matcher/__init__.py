"""Core engine package for Color Matcher."""

__all__ = [
    "tiles",
    "board",
    "rules_schema",
    "scoring",
    "scheduling",
    "game",
    "storage",
    "profiles",
    "service",
    "tutorial",
]
