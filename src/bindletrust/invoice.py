"""Invoice data model: bindle metadata, parcels and signature records."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bindletrust.security import SecurityLimits, safe_load_document, write_document

INVOICE_SCHEMA_VERSION = "1.0.0"


@dataclass
class Label:
    """Label describing a single parcel."""

    sha256: str
    media_type: str = "application/octet-stream"
    name: str = ""
    size: int = 0
    annotations: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "sha256": self.sha256,
            "mediaType": self.media_type,
            "name": self.name,
            "size": self.size,
        }
        if self.annotations:
            result["annotations"] = dict(self.annotations)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Label:
        """Create from dictionary."""
        return cls(
            sha256=data["sha256"],
            media_type=data.get("mediaType", "application/octet-stream"),
            name=data.get("name", ""),
            size=data.get("size", 0),
            annotations=data.get("annotations", {}),
        )


@dataclass
class Parcel:
    """A content-addressed part of a bindle."""

    label: Label

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"label": self.label.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Parcel:
        """Create from dictionary."""
        return cls(label=Label.from_dict(data["label"]))


@dataclass
class BindleSpec:
    """Name, version and authors of the bindle an invoice describes."""

    name: str
    version: str
    description: str | None = None
    authors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {"name": self.name, "version": self.version}
        if self.description is not None:
            result["description"] = self.description
        result["authors"] = list(self.authors)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BindleSpec:
        """Create from dictionary."""
        return cls(
            name=data["name"],
            version=data["version"],
            description=data.get("description"),
            authors=list(data.get("authors", [])),
        )


@dataclass(frozen=True)
class Signature:
    """A stored attestation that ``by`` vouches for the invoice under ``role``.

    ``key`` is the signer's public key at signing time. It is kept for audit
    only; verification trusts the caller-supplied keys instead.
    """

    by: str
    signature: str
    key: str
    role: str
    at: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "by": self.by,
            "signature": self.signature,
            "key": self.key,
            "role": self.role,
            "at": self.at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Signature:
        """Create from dictionary."""
        return cls(
            by=data["by"],
            signature=data["signature"],
            key=data["key"],
            role=data["role"],
            at=int(data["at"]),
        )


@dataclass
class Invoice:
    """Manifest of a bindle and the signatures attached to it.

    ``signature`` is append-only and is only ever extended by
    :func:`bindletrust.provenance.signing.generate_signature`. It stays
    ``None`` until the first signature is added.
    """

    bindle: BindleSpec
    parcel: list[Parcel] = field(default_factory=list)
    signature: list[Signature] | None = None
    bindle_version: str = INVOICE_SCHEMA_VERSION
    yanked: bool = False
    annotations: dict[str, str] = field(default_factory=dict)

    def is_authored_by(self, author: str) -> bool:
        """Return True if ``author`` is listed in the bindle's authors."""
        return author in self.bindle.authors

    def add_parcel(self, parcel: Parcel) -> None:
        """Add a parcel to the invoice."""
        self.parcel.append(parcel)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {"bindleVersion": self.bindle_version}
        if self.yanked:
            result["yanked"] = True
        result["bindle"] = self.bindle.to_dict()
        if self.annotations:
            result["annotations"] = dict(self.annotations)
        result["parcel"] = [p.to_dict() for p in self.parcel]
        if self.signature is not None:
            result["signature"] = [s.to_dict() for s in self.signature]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Invoice:
        """Create from dictionary."""
        signatures = data.get("signature")
        return cls(
            bindle=BindleSpec.from_dict(data["bindle"]),
            parcel=[Parcel.from_dict(p) for p in data.get("parcel", [])],
            signature=None if signatures is None else [Signature.from_dict(s) for s in signatures],
            bindle_version=data.get("bindleVersion", INVOICE_SCHEMA_VERSION),
            yanked=bool(data.get("yanked", False)),
            annotations=data.get("annotations", {}),
        )

    @classmethod
    def from_file(cls, path: Path, limits: SecurityLimits | None = None) -> Invoice:
        """Load an invoice from a JSON or YAML file."""
        return cls.from_dict(safe_load_document(path, limits))

    def write(self, path: Path) -> None:
        """Write the invoice as JSON or YAML, depending on the suffix."""
        write_document(path, self.to_dict())
