"""Tests for the bindlectl command line."""

from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import AUTHOR, AUTHOR_SEED, OTHER_AUTHOR, make_invoice
from bindletrust.cli import cli
from bindletrust.invoice import Invoice
from bindletrust.provenance.keyring import write_keyring
from bindletrust.provenance.signing import SignatureKey


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("BINDLETRUST_SIGNING_PRIVATE_KEY", "BINDLETRUST_KEYRING", "BINDLETRUST_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workspace(tmp_path: Path, author_key: SignatureKey) -> dict[str, Path]:
    paths = {
        "invoice": tmp_path / "invoice.json",
        "private": tmp_path / "author.private",
        "key": tmp_path / "author.key.json",
        "keyring": tmp_path / "keyring.json",
    }
    make_invoice().write(paths["invoice"])
    paths["private"].write_text(base64.b64encode(AUTHOR_SEED).decode("ascii") + "\n", encoding="utf-8")
    paths["key"].write_text(json.dumps(author_key.to_dict()), encoding="utf-8")
    write_keyring(paths["keyring"], [author_key])
    return paths


def sign_args(paths: dict[str, Path], author: str = AUTHOR, role: str = "creator") -> list[str]:
    return [
        "sign",
        "--invoice", str(paths["invoice"]),
        "--author", author,
        "--role", role,
        "--signing-key", str(paths["key"]),
        "--private-key-file", str(paths["private"]),
    ]


class TestCli:
    """Test bindlectl commands."""

    def test_cleartext(self, workspace):
        """Test the cleartext command prints the signed text."""
        result = CliRunner().invoke(cli, [
            "cleartext", "-i", str(workspace["invoice"]), "-a", AUTHOR, "-r", "creator",
        ])

        assert result.exit_code == 0
        assert result.output.startswith(f"{AUTHOR}\nmybindle\n0.1.0\ncreator\n~\n")

    def test_certify_key(self, workspace, author_key):
        """Test certify-key reproduces a valid key document."""
        result = CliRunner().invoke(cli, [
            "certify-key", "--label", AUTHOR, "--role", "creator", "--role", "approver",
            "--private-key-file", str(workspace["private"]),
        ])

        assert result.exit_code == 0
        key = SignatureKey.from_dict(json.loads(result.output))
        assert key == author_key
        assert key.verify_label() is True

    def test_certify_key_from_env(self, monkeypatch, tmp_path: Path):
        """Test the private key can come from the environment."""
        monkeypatch.setenv("BINDLETRUST_SIGNING_PRIVATE_KEY", base64.b64encode(AUTHOR_SEED).decode("ascii"))
        out = tmp_path / "key.json"

        result = CliRunner().invoke(cli, ["certify-key", "-l", AUTHOR, "-r", "host", "-o", str(out)])

        assert result.exit_code == 0
        assert SignatureKey.from_dict(json.loads(out.read_text(encoding="utf-8"))).verify_label()

    def test_sign_and_verify(self, workspace):
        """Test signing then verifying through the CLI."""
        runner = CliRunner()

        signed = runner.invoke(cli, sign_args(workspace))
        assert signed.exit_code == 0
        assert len(Invoice.from_file(workspace["invoice"]).signature) == 1

        verified = runner.invoke(cli, [
            "verify", "-i", str(workspace["invoice"]), "-k", str(workspace["keyring"]),
        ])
        assert verified.exit_code == 0
        assert "VALID" in verified.output

    def test_sign_to_out(self, workspace, tmp_path: Path):
        """Test --out leaves the input invoice untouched."""
        out = tmp_path / "signed.yaml"
        result = CliRunner().invoke(cli, sign_args(workspace) + ["--out", str(out)])

        assert result.exit_code == 0
        assert Invoice.from_file(workspace["invoice"]).signature is None
        assert len(Invoice.from_file(out).signature) == 1

    def test_sign_unknown_author(self, workspace):
        """Test the error code is shown for authors missing from the invoice."""
        result = CliRunner().invoke(cli, sign_args(workspace, author=OTHER_AUTHOR))

        assert result.exit_code == 1
        assert "AUTHOR_NOT_EXIST" in result.output

    def test_sign_invalid_role(self, workspace):
        """Test unknown roles are rejected."""
        result = CliRunner().invoke(cli, sign_args(workspace, role="owner"))

        assert result.exit_code == 1
        assert "INVALID_ROLE" in result.output

    def test_sign_without_private_key(self, workspace):
        """Test signing needs a private key."""
        args = sign_args(workspace)
        args = args[:args.index("--private-key-file")]

        result = CliRunner().invoke(cli, args)
        assert result.exit_code == 2

    def test_verify_tampered(self, workspace, tmp_path: Path):
        """Test tampering is reported and fails the command."""
        runner = CliRunner()
        runner.invoke(cli, sign_args(workspace))

        invoice = Invoice.from_file(workspace["invoice"])
        invoice.parcel.reverse()
        invoice.write(workspace["invoice"])

        result = runner.invoke(cli, [
            "verify", "-i", str(workspace["invoice"]), "-k", str(workspace["keyring"]),
            "-o", str(tmp_path / "report"),
        ])

        assert result.exit_code == 1
        assert "INVALID_SIGNATURE" in result.output
        assert (tmp_path / "report" / "verification_report.json").exists()

    def test_verify_keyring_from_env(self, workspace, monkeypatch):
        """Test the keyring can come from the environment."""
        monkeypatch.setenv("BINDLETRUST_KEYRING", str(workspace["keyring"]))

        result = CliRunner().invoke(cli, ["verify", "-i", str(workspace["invoice"])])
        assert result.exit_code == 0

    def test_verify_without_keyring(self, workspace):
        """Test verify needs a keyring."""
        result = CliRunner().invoke(cli, ["verify", "-i", str(workspace["invoice"])])
        assert result.exit_code == 2
