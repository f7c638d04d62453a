"""Ed25519 signing of bindle invoices.

Each signature is made by one author under one role. Signing keys carry a
self-certificate: the key's own signature over its label. A key is only
trusted once that certificate checks out.

Public keys, signatures and label signatures are stored as standard base64.
Malformed base64 raises :class:`binascii.Error` straight from the decoder.
"""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from bindletrust.invoice import Invoice, Signature
from bindletrust.provenance.cleartext import cleartext_bytes
from bindletrust.security import SecurityError

logger = logging.getLogger(__name__)

SEED_SIZE = 32
EXPANDED_KEY_SIZE = 64  # seed || public key


class Role(str, Enum):
    """Roles a party can sign an invoice under."""

    CREATOR = "creator"
    APPROVER = "approver"
    PROXY = "proxy"
    HOST = "host"

    @classmethod
    def is_valid(cls, value: str | Role) -> bool:
        """Check whether ``value`` names one of the roles."""
        if isinstance(value, Role):
            return True
        return value in {role.value for role in cls}


class SigningError(Exception):
    """Error during invoice signing or verification."""

    code = "SIGNING_ERROR"


class InvalidRoleError(SigningError):
    """Role is not one of creator, approver, proxy or host."""

    code = "INVALID_ROLE"

    def __init__(self, role: str) -> None:
        super().__init__(f"invalid role: {role!r}")
        self.role = role


class SignatureKeyRoleMismatchError(SigningError):
    """Signature key is not valid for the requested role."""

    code = "SIGNATURE_KEY_ROLE_MISMATCH"

    def __init__(self, label: str, role: str) -> None:
        super().__init__(f"signature key {label!r} is not valid for role {role!r}")
        self.label = label
        self.role = role


class AuthorNotExistError(SigningError):
    """Author is not listed on the invoice."""

    code = "AUTHOR_NOT_EXIST"

    def __init__(self, author: str) -> None:
        super().__init__(f"author does not exist on invoice: {author!r}")
        self.author = author


class VerificationError(SigningError):
    """Error during verification."""

    code = "VERIFICATION_ERROR"


class InvalidSignatureKeyError(VerificationError):
    """A supplied key's label signature does not verify."""

    code = "INVALID_SIGNATURE_KEY"

    def __init__(self, label: str) -> None:
        super().__init__(f"signature key is not valid: {label!r}")
        self.label = label


class MissingSignatureKeyError(VerificationError):
    """No supplied key matches the author of an invoice signature."""

    code = "MISSING_SIGNATURE_KEY"

    def __init__(self, author: str) -> None:
        super().__init__(f"missing signature key for {author!r}")
        self.author = author


class InvalidSignatureError(VerificationError):
    """An invoice signature does not verify against its cleartext."""

    code = "INVALID_SIGNATURE"

    def __init__(self, author: str, role: str) -> None:
        super().__init__(f"signature is not valid: by {author!r} as {role!r}")
        self.author = author
        self.role = role


def b64decode(value: str) -> bytes:
    """Strict standard base64 decode; raises :class:`binascii.Error`."""
    return base64.b64decode(value, validate=True)


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def load_private_key(private_key: bytes) -> Ed25519PrivateKey:
    """Build an Ed25519 key from a 32-byte seed or 64-byte expanded key.

    Raises:
        SigningError: If the key material has the wrong length
    """
    if len(private_key) == EXPANDED_KEY_SIZE:
        private_key = private_key[:SEED_SIZE]
    if len(private_key) != SEED_SIZE:
        raise SigningError(
            f"private key must be {SEED_SIZE} or {EXPANDED_KEY_SIZE} bytes, got {len(private_key)}"
        )
    return Ed25519PrivateKey.from_private_bytes(private_key)


def public_key_bytes(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def verify_bytes(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Return True if ``signature`` is a valid Ed25519 signature of ``message``.

    A public key of the wrong size counts as a failed verification.
    """
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
    except (InvalidSignature, ValueError):
        return False
    return True


@dataclass
class SignatureKey:
    """A named public key, the roles it may sign under and its self-certificate.

    ``roles`` holds role names as written in the key document. Names outside
    :class:`Role` are kept but never grant anything.
    """

    label: str
    key: str
    roles: list[str] = field(default_factory=list)
    label_signature: str = ""

    def __post_init__(self) -> None:
        self.roles = [r.value if isinstance(r, Role) else r for r in self.roles]

    def includes_role(self, role: str | Role) -> bool:
        """Check whether this key may sign under ``role``."""
        if not Role.is_valid(role):
            return False
        return Role(role).value in self.roles

    def verify_label(self) -> bool:
        """Check the self-certificate: ``label_signature`` over ``label``.

        Raises:
            binascii.Error: If the key or label signature is not valid base64
        """
        key_bytes = b64decode(self.key)
        label_sig_bytes = b64decode(self.label_signature)
        return verify_bytes(key_bytes, self.label.encode("utf-8"), label_sig_bytes)

    @classmethod
    def certify(cls, label: str, roles: Iterable[str | Role], private_key: bytes) -> SignatureKey:
        """Create a self-certified key for ``label`` from existing key material."""
        signing_key = load_private_key(private_key)
        return cls(
            label=label,
            key=b64encode(public_key_bytes(signing_key)),
            roles=list(roles),
            label_signature=b64encode(signing_key.sign(label.encode("utf-8"))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "label": self.label,
            "roles": list(self.roles),
            "key": self.key,
            "labelSignature": self.label_signature,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignatureKey:
        """Create from dictionary.

        Raises:
            SecurityError: If ``roles`` is not a list of strings
        """
        roles = data.get("roles", [])
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise SecurityError(f"Signature key 'roles' must be a list of strings: {data.get('label')!r}")
        return cls(
            label=data["label"],
            key=data["key"],
            roles=list(roles),
            label_signature=data.get("labelSignature", ""),
        )


def generate_signature(
    invoice: Invoice,
    author: str,
    role: str | Role,
    sig_key: SignatureKey,
    private_key: bytes,
) -> Signature:
    """Sign ``invoice`` as ``author`` under ``role`` and append the record.

    The role, the key's capability for the role and the author's presence on
    the invoice are checked in that order. Nothing is appended if any check
    or the signing itself fails.

    Args:
        invoice: Invoice to sign; its signature list is extended in place
        author: Signing author, must be one of the bindle's authors
        role: One of the :class:`Role` values
        sig_key: The signer's declared key and roles
        private_key: Raw Ed25519 private key (32-byte seed or 64-byte expanded)

    Returns:
        The appended Signature record

    Raises:
        InvalidRoleError: If ``role`` is unknown
        SignatureKeyRoleMismatchError: If ``sig_key`` lacks ``role``
        AuthorNotExistError: If ``author`` is not on the invoice
        binascii.Error: If ``sig_key.key`` is not valid base64
    """
    if not Role.is_valid(role):
        raise InvalidRoleError(str(role))
    role = Role(role)

    if not sig_key.includes_role(role):
        raise SignatureKeyRoleMismatchError(sig_key.label, role.value)

    if not invoice.is_authored_by(author):
        raise AuthorNotExistError(author)

    timestamp = int(time.time())

    cleartext = cleartext_bytes(author, role.value, invoice)
    sig = load_private_key(private_key).sign(cleartext)

    pub_key = b64decode(sig_key.key)

    signature = Signature(
        by=author,
        signature=b64encode(sig),
        key=b64encode(pub_key),
        role=role.value,
        at=timestamp,
    )

    if invoice.signature is None:
        invoice.signature = []
    invoice.signature.append(signature)

    logger.debug(
        "Signed %s/%s as %r (%s) over %d parcels",
        invoice.bindle.name,
        invoice.bindle.version,
        author,
        role.value,
        len(invoice.parcel),
    )
    return signature
