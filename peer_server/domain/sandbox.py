"""Confine content lookups to the configured directory."""

from pathlib import Path


class ForbiddenPath(Exception):
    """Raised when a requested name escapes the content directory."""


def resolve_content_path(directory: str, name: str) -> Path:
    """Resolve ``name`` relative to ``directory`` without leaving it."""
    if "\x00" in name:
        raise ForbiddenPath(name)

    root = Path(directory).resolve()
    relative = name.lstrip("/")
    if not relative or ".." in Path(relative).parts:
        raise ForbiddenPath(name)

    target = (root / relative).resolve()
    if root not in target.parents:
        raise ForbiddenPath(name)
    return target
