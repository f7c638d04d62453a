"""Verification of the signatures attached to an invoice."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from bindletrust.invoice import Invoice
from bindletrust.provenance.cleartext import cleartext_bytes
from bindletrust.provenance.signing import (
    InvalidSignatureError,
    InvalidSignatureKeyError,
    MissingSignatureKeyError,
    SignatureKey,
    SignatureKeyRoleMismatchError,
    SigningError,
    b64decode,
    verify_bytes,
)

logger = logging.getLogger(__name__)


def trusted_keys(sig_keys: Sequence[SignatureKey]) -> dict[str, SignatureKey]:
    """Index keys by label after checking each key's self-certificate.

    One bad key fails the whole set. On duplicate labels the last key wins.

    Raises:
        InvalidSignatureKeyError: If any key's label signature does not verify
        binascii.Error: If a key or label signature is not valid base64
    """
    keys: dict[str, SignatureKey] = {}
    for key in sig_keys:
        if not key.verify_label():
            logger.warning("Signature key %r failed self-certification", key.label)
            raise InvalidSignatureKeyError(key.label)
        keys[key.label] = key
    return keys


def verify_signatures(invoice: Invoice, sig_keys: Sequence[SignatureKey]) -> None:
    """Verify every signature on ``invoice`` against ``sig_keys``.

    Returns normally only if every supplied key self-certifies and every
    signature verifies against the supplied key for its author, under a
    role that key holds. The first failure aborts the check.

    Raises:
        InvalidSignatureKeyError: If a supplied key fails self-certification
        MissingSignatureKeyError: If a signature's author has no supplied key
        SignatureKeyRoleMismatchError: If the supplied key lacks the signature's role
        InvalidSignatureError: If a signature does not match the cleartext
        binascii.Error: If any key or signature is not valid base64
    """
    keys = trusted_keys(sig_keys)
    logger.debug("Trusting %d signature keys", len(keys))

    for record in invoice.signature or []:
        key = keys.get(record.by)
        if key is None:
            logger.warning("No signature key supplied for %r", record.by)
            raise MissingSignatureKeyError(record.by)

        if not key.includes_role(record.role):
            logger.warning("Signature key %r does not hold role %r", key.label, record.role)
            raise SignatureKeyRoleMismatchError(key.label, record.role)

        key_bytes = b64decode(key.key)
        sig_bytes = b64decode(record.signature)

        # Authenticate against the key's label; lookup already made it equal to record.by.
        cleartext = cleartext_bytes(key.label, record.role, invoice)

        if not verify_bytes(key_bytes, cleartext, sig_bytes):
            logger.warning("Signature by %r as %r does not verify", record.by, record.role)
            raise InvalidSignatureError(record.by, record.role)

        logger.debug("Verified signature by %r as %r", record.by, record.role)


@dataclass
class VerificationResult:
    """Result of invoice verification."""

    valid: bool
    bindle: str = ""
    keys_supplied: int = 0
    signature_count: int = 0
    error_code: str | None = None
    error: str | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "bindle": self.bindle,
            "keys_supplied": self.keys_supplied,
            "signature_count": self.signature_count,
            "error_code": self.error_code,
            "error": self.error,
            "timestamp": self.timestamp,
        }

    def write_json(self, path: Path) -> None:
        """Write to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)

    def write_markdown(self, path: Path) -> None:
        """Write to Markdown file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self._generate_markdown())

    def _generate_markdown(self) -> str:
        lines = [
            "# Invoice Verification Report",
            "",
            f"**Status:** {'✅ VALID' if self.valid else '❌ INVALID'}",
            f"**Bindle:** {self.bindle}",
            f"**Timestamp:** {self.timestamp}",
            "",
            "## Summary",
            "",
            f"- **Keys Supplied:** {self.keys_supplied}",
            f"- **Signatures:** {self.signature_count}",
            "",
        ]

        if self.error_code:
            lines.extend([
                "## Error",
                "",
                f"- **Code:** `{self.error_code}`",
                f"- **Message:** {self.error}",
                "",
            ])

        return "\n".join(lines)


class InvoiceVerifier:
    """Runs :func:`verify_signatures` and records the outcome as a report."""

    def __init__(self, sig_keys: Sequence[SignatureKey]) -> None:
        self.sig_keys = list(sig_keys)

    def verify(self, invoice: Invoice) -> VerificationResult:
        """Verify ``invoice``; failures are captured in the result.

        Malformed base64 is reported with code ``DECODE_ERROR``.
        """
        result = VerificationResult(
            valid=False,
            bindle=f"{invoice.bindle.name}/{invoice.bindle.version}",
            keys_supplied=len(self.sig_keys),
            signature_count=len(invoice.signature or []),
        )

        try:
            verify_signatures(invoice, self.sig_keys)
        except SigningError as e:
            result.error_code = e.code
            result.error = str(e)
            return result
        except ValueError as e:
            # binascii.Error from malformed base64
            result.error_code = "DECODE_ERROR"
            result.error = str(e)
            return result

        result.valid = True
        return result

    def verify_and_report(
        self,
        invoice: Invoice,
        output_dir: Path,
    ) -> tuple[VerificationResult, dict[str, Path]]:
        """Verify and write reports.

        Returns:
            Tuple of (result, report_paths)
        """
        result = self.verify(invoice)

        output_dir.mkdir(parents=True, exist_ok=True)
        paths = {}

        json_path = output_dir / "verification_report.json"
        result.write_json(json_path)
        paths["json"] = json_path

        md_path = output_dir / "verification_report.md"
        result.write_markdown(md_path)
        paths["markdown"] = md_path

        return result, paths
