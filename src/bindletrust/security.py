"""Size and depth limits for untrusted invoice and keyring documents.

Invoices and keyrings arrive from outside the process, so every read goes
through the limits defined here before the data reaches the model types.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

DEFAULT_MAX_DOCUMENT_SIZE = 10 * 1024 * 1024  # 10 MB
DEFAULT_MAX_DOCUMENT_DEPTH = 32

YAML_SUFFIXES = (".yaml", ".yml")


class SecurityLimits:
    """Configurable document limits."""

    def __init__(
        self,
        max_document_size: int = DEFAULT_MAX_DOCUMENT_SIZE,
        max_document_depth: int = DEFAULT_MAX_DOCUMENT_DEPTH,
    ) -> None:
        self.max_document_size = max_document_size
        self.max_document_depth = max_document_depth


class SecurityError(Exception):
    """Document rejected by a security limit."""
    pass


def is_yaml_path(path: Path) -> bool:
    """Return True if ``path`` should be read and written as YAML."""
    return path.suffix.lower() in YAML_SUFFIXES


def safe_read_text(path: Path, limits: SecurityLimits | None = None) -> str:
    """Read a UTF-8 document, refusing files over the size limit.

    Raises:
        SecurityError: If the file is larger than ``max_document_size``
    """
    if limits is None:
        limits = SecurityLimits()

    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > limits.max_document_size:
        raise SecurityError(
            f"Document too large: {path} ({size} bytes > {limits.max_document_size})"
        )

    return resolved.read_text(encoding="utf-8")


def check_document_depth(obj: Any, current_depth: int = 0, max_depth: int = DEFAULT_MAX_DOCUMENT_DEPTH) -> int:
    """Check nesting depth of a parsed document.

    Returns:
        Actual depth of object

    Raises:
        SecurityError: If depth exceeds max_depth
    """
    if current_depth > max_depth:
        raise SecurityError(f"Document depth exceeds maximum: {max_depth}")

    if isinstance(obj, dict):
        children = list(obj.values())
    elif isinstance(obj, list):
        children = obj
    else:
        return current_depth

    deepest = current_depth
    for child in children:
        deepest = max(deepest, check_document_depth(child, current_depth + 1, max_depth))
    return deepest


def safe_load_document(path: Path, limits: SecurityLimits | None = None) -> dict[str, Any]:
    """Load a JSON or YAML mapping from ``path`` within limits.

    The format is chosen by suffix: ``.yaml``/``.yml`` is YAML, anything
    else is JSON.

    Raises:
        SecurityError: If a limit is exceeded or the document is not a mapping
    """
    if limits is None:
        limits = SecurityLimits()

    text = safe_read_text(path, limits)

    try:
        if is_yaml_path(path):
            obj = yaml.safe_load(text)
        else:
            obj = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SecurityError(f"Invalid document {path}: {e}") from e

    if not isinstance(obj, dict):
        raise SecurityError(f"Document must be a mapping: {path}")

    check_document_depth(obj, max_depth=limits.max_document_depth)
    return obj


def write_document(path: Path, data: dict[str, Any]) -> None:
    """Write a mapping to ``path`` as JSON or YAML, matching the suffix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if is_yaml_path(path):
            yaml.safe_dump(data, f, sort_keys=False)
        else:
            json.dump(data, f, indent=2)
            f.write("\n")
