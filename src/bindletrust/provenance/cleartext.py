"""Canonical cleartext for invoice signatures.

Cleartext format::

    Matt Butcher <matt.butcher@example.com>
    mybindle
    0.1.0
    creator
    ~
    e1706ab0a39ac88094b6d54a3f5cdba41fe5a901
    098fa798779ac88094b6d54a3f5cdba41fe5a901
    5b992e90b71d5fadab3cd3777230ef370df75f5b

The published bindle signing format also puts the signature's ``at`` value in
the cleartext. Bindle servers do not, so neither do we
(https://github.com/deislabs/bindle/issues/284).

Fields are joined as-is. A field containing a newline makes the cleartext
ambiguous; callers must not produce such fields.
"""

from __future__ import annotations

from bindletrust.invoice import Invoice

SEPARATOR = "\n"
PARCEL_MARKER = "~"


def generate_cleartext(author: str, role: str, invoice: Invoice) -> str:
    """Render the text an ``author`` signs under ``role`` for ``invoice``."""
    parts = [
        author,
        invoice.bindle.name,
        invoice.bindle.version,
        role,
        PARCEL_MARKER,
    ]
    parts.extend(p.label.sha256 for p in invoice.parcel)
    return SEPARATOR.join(parts)


def cleartext_bytes(author: str, role: str, invoice: Invoice) -> bytes:
    """UTF-8 encoded cleartext, the exact signed payload."""
    return generate_cleartext(author, role, invoice).encode("utf-8")
