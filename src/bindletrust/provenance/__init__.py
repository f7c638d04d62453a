"""Invoice signing and verification.

Signers attach role-scoped Ed25519 signatures to an invoice; verifiers check
them against a set of self-certified signature keys.
"""

from __future__ import annotations

from bindletrust.provenance.cleartext import cleartext_bytes, generate_cleartext
from bindletrust.provenance.keyring import load_keyring, write_keyring
from bindletrust.provenance.signing import (
    AuthorNotExistError,
    InvalidRoleError,
    InvalidSignatureError,
    InvalidSignatureKeyError,
    MissingSignatureKeyError,
    Role,
    SignatureKey,
    SignatureKeyRoleMismatchError,
    SigningError,
    VerificationError,
    generate_signature,
)
from bindletrust.provenance.verifier import InvoiceVerifier, VerificationResult, verify_signatures

__all__ = [
    "AuthorNotExistError",
    "InvalidRoleError",
    "InvalidSignatureError",
    "InvalidSignatureKeyError",
    "InvoiceVerifier",
    "MissingSignatureKeyError",
    "Role",
    "SignatureKey",
    "SignatureKeyRoleMismatchError",
    "SigningError",
    "VerificationError",
    "VerificationResult",
    "cleartext_bytes",
    "generate_cleartext",
    "generate_signature",
    "load_keyring",
    "verify_signatures",
    "write_keyring",
]
