"""Keyring documents: a list of signature keys under a ``key`` entry."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from bindletrust.provenance.signing import SignatureKey
from bindletrust.security import SecurityError, SecurityLimits, safe_load_document, write_document


def load_keyring(path: Path, limits: SecurityLimits | None = None) -> list[SignatureKey]:
    """Load signature keys from a JSON or YAML keyring file.

    Keys are returned as stored; their self-certificates are checked at
    verification time, not here.

    Raises:
        SecurityError: If the document exceeds limits or has no key list
    """
    data = safe_load_document(path, limits)
    entries = data.get("key", [])
    if not isinstance(entries, list):
        raise SecurityError(f"Keyring 'key' entry must be a list: {path}")
    return [SignatureKey.from_dict(entry) for entry in entries]


def write_keyring(path: Path, keys: Iterable[SignatureKey]) -> None:
    """Write signature keys to a keyring file."""
    write_document(path, {"key": [k.to_dict() for k in keys]})
