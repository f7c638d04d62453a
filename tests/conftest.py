"""Shared fixtures: deterministic Ed25519 seeds, keys and invoices."""

from __future__ import annotations

import pytest

from bindletrust.invoice import BindleSpec, Invoice, Label, Parcel
from bindletrust.provenance.signing import SignatureKey

AUTHOR = "Matt Butcher <matt.butcher@example.com>"
OTHER_AUTHOR = "Radu Matei <radu.matei@example.com>"

PARCEL_SHAS = [
    "e1706ab0a39ac88094b6d54a3f5cdba41fe5a901",
    "098fa798779ac88094b6d54a3f5cdba41fe5a901",
    "5b992e90b71d5fadab3cd3777230ef370df75f5b",
]

AUTHOR_SEED = bytes.fromhex("9f2c4b7a1d08e3f5a6b0c3d4e7f812349abcedf00123456789abcdef01234567")
OTHER_SEED = bytes.fromhex("0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef")


def make_invoice(authors: list[str] | None = None) -> Invoice:
    return Invoice(
        bindle=BindleSpec(
            name="mybindle",
            version="0.1.0",
            authors=[AUTHOR] if authors is None else authors,
        ),
        parcel=[
            Parcel(label=Label(sha256=sha, name=f"parcel{i}.dat", size=i + 1))
            for i, sha in enumerate(PARCEL_SHAS)
        ],
    )


@pytest.fixture
def invoice() -> Invoice:
    return make_invoice()


@pytest.fixture
def author_key() -> SignatureKey:
    return SignatureKey.certify(AUTHOR, ["creator", "approver"], AUTHOR_SEED)


@pytest.fixture
def other_key() -> SignatureKey:
    return SignatureKey.certify(OTHER_AUTHOR, ["host"], OTHER_SEED)
