"""bindlectl: sign and verify bindle invoices."""

from __future__ import annotations

import base64
import json
import logging
import sys
import traceback
from pathlib import Path

import click

from bindletrust import __version__
from bindletrust.config import SigningConfig
from bindletrust.invoice import Invoice
from bindletrust.provenance.cleartext import generate_cleartext
from bindletrust.provenance.keyring import load_keyring
from bindletrust.provenance.signing import Role, SignatureKey, SigningError, generate_signature
from bindletrust.provenance.verifier import InvoiceVerifier
from bindletrust.security import safe_load_document, safe_read_text

ROLE_CHOICE = click.Choice([r.value for r in Role])


def handle_error(error: Exception, debug: bool) -> None:
    """Handle errors with structured output.

    Args:
        error: The exception that occurred
        debug: Whether to show full traceback
    """
    if debug:
        traceback.print_exc()
    elif isinstance(error, SigningError):
        click.echo(f"Error [{error.code}]: {error}", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def resolve_private_key(config: SigningConfig, private_key_file: Path | None) -> bytes:
    """Private key from ``private_key_file`` or the environment."""
    if private_key_file is not None:
        text = safe_read_text(private_key_file, config.limits())
        return base64.b64decode(text.strip(), validate=True)
    if config.private_key is None:
        raise click.UsageError(
            "No private key: pass --private-key-file or set BINDLETRUST_SIGNING_PRIVATE_KEY"
        )
    return config.private_key


@click.group()
@click.version_option(version=__version__, prog_name="bindlectl")
@click.option('--debug', is_flag=True, help='Enable debug mode (show full tracebacks)')
@click.pass_context
def cli(ctx: click.Context, debug: bool):
    """bindlectl - Role-scoped signing for bindle invoices."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    try:
        config = SigningConfig.from_env()
    except ValueError as e:
        handle_error(e, debug)

    logging.basicConfig(
        level=logging.DEBUG if debug else config.logging_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj['config'] = config


@cli.command()
@click.option('--invoice', '-i', required=True, type=click.Path(exists=True, path_type=Path), help='Invoice file')
@click.option('--author', '-a', required=True, help='Signing author')
@click.option('--role', '-r', required=True, type=ROLE_CHOICE, help='Signing role')
@click.pass_context
def cleartext(ctx: click.Context, invoice: Path, author: str, role: str):
    """Print the cleartext AUTHOR signs under ROLE.

    Examples:
      bindlectl cleartext --invoice invoice.json --author "Jane <jane@example.com>" --role creator
    """
    debug = ctx.obj.get('debug', False)
    config: SigningConfig = ctx.obj['config']

    try:
        inv = Invoice.from_file(invoice, config.limits())
        click.echo(generate_cleartext(author, role, inv))
    except Exception as e:
        handle_error(e, debug)


@cli.command(name="certify-key")
@click.option('--label', '-l', required=True, help='Key label, usually the author identity')
@click.option('--role', '-r', 'roles', required=True, multiple=True, type=ROLE_CHOICE,
              help='Role the key may sign under (repeatable)')
@click.option('--private-key-file', type=click.Path(exists=True, path_type=Path),
              help='File holding the base64 private key')
@click.option('--out', '-o', type=click.Path(path_type=Path), help='Write the key document here')
@click.pass_context
def certify_key(ctx: click.Context, label: str, roles: tuple[str, ...], private_key_file: Path | None, out: Path | None):
    """Self-certify an existing private key as a signature key.

    The resulting document holds the public key, its roles and a signature
    over LABEL made by the key itself.
    """
    debug = ctx.obj.get('debug', False)
    config: SigningConfig = ctx.obj['config']

    try:
        private_key = resolve_private_key(config, private_key_file)
        key = SignatureKey.certify(label, roles, private_key)
        document = json.dumps(key.to_dict(), indent=2)
        if out:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(document + "\n", encoding="utf-8")
            click.echo(f"Signature key written to: {out}")
        else:
            click.echo(document)
    except click.UsageError:
        raise
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.option('--invoice', '-i', required=True, type=click.Path(exists=True, path_type=Path), help='Invoice file')
@click.option('--author', '-a', required=True, help='Signing author')
@click.option('--role', '-r', required=True, help='Signing role')
@click.option('--signing-key', '-k', required=True, type=click.Path(exists=True, path_type=Path),
              help='Signature key document for the signer')
@click.option('--private-key-file', type=click.Path(exists=True, path_type=Path),
              help='File holding the base64 private key')
@click.option('--out', '-o', type=click.Path(path_type=Path), help='Output invoice (default: overwrite input)')
@click.pass_context
def sign(
    ctx: click.Context,
    invoice: Path,
    author: str,
    role: str,
    signing_key: Path,
    private_key_file: Path | None,
    out: Path | None,
):
    """Sign an invoice as AUTHOR under ROLE.

    Examples:
      bindlectl sign -i invoice.json -a "Jane <jane@example.com>" -r creator -k jane.key.json
    """
    debug = ctx.obj.get('debug', False)
    config: SigningConfig = ctx.obj['config']

    try:
        private_key = resolve_private_key(config, private_key_file)
        inv = Invoice.from_file(invoice, config.limits())
        key = SignatureKey.from_dict(safe_load_document(signing_key, config.limits()))

        signature = generate_signature(inv, author, role, key, private_key)

        target = out or invoice
        inv.write(target)
        click.echo(f"Signed {inv.bindle.name}/{inv.bindle.version} as {signature.by} ({signature.role})")
        click.echo(f"Invoice written to: {target}")
    except click.UsageError:
        raise
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.option('--invoice', '-i', required=True, type=click.Path(exists=True, path_type=Path), help='Invoice file')
@click.option('--keyring', '-k', type=click.Path(exists=True, path_type=Path),
              help='Keyring file (default: BINDLETRUST_KEYRING)')
@click.option('--out', '-o', type=click.Path(path_type=Path), help='Output directory for verification reports')
@click.pass_context
def verify(ctx: click.Context, invoice: Path, keyring: Path | None, out: Path | None):
    """Verify every signature on an invoice.

    Every key in the keyring must carry a valid self-certificate and every
    signature must verify against the keyring key for its author.

    Examples:
      bindlectl verify --invoice invoice.json --keyring keyring.json
      bindlectl verify --invoice invoice.json --keyring keyring.json --out ./verification-report
    """
    debug = ctx.obj.get('debug', False)
    config: SigningConfig = ctx.obj['config']

    keyring = keyring or config.keyring_path
    if keyring is None:
        raise click.UsageError("No keyring: pass --keyring or set BINDLETRUST_KEYRING")

    try:
        inv = Invoice.from_file(invoice, config.limits())
        keys = load_keyring(keyring, config.limits())
        verifier = InvoiceVerifier(keys)

        if out:
            result, paths = verifier.verify_and_report(inv, out)
            click.echo("Verification reports written to:")
            click.echo(f"  - JSON: {paths['json']}")
            click.echo(f"  - MD:   {paths['markdown']}")
        else:
            result = verifier.verify(inv)

        click.echo(f"Verification Result: {'✅ VALID' if result.valid else '❌ INVALID'}")
        click.echo(f"  Bindle: {result.bindle}")
        click.echo(f"  Keys supplied: {result.keys_supplied}")
        click.echo(f"  Signatures: {result.signature_count}")
        if result.error_code:
            click.echo(f"  Error [{result.error_code}]: {result.error}")
    except Exception as e:
        handle_error(e, debug)

    if not result.valid:
        sys.exit(1)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == '__main__':
    main()
