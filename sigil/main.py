"""sigil CLI entry point."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import click

from sigil.config import SigilSettings, load_config
from sigil.core.hasher import BufferedWindowReader, ChunkedHasher, default_reader
from sigil.core.key_codec import KeyCodec
from sigil.core.keys import generate_keypair
from sigil.core.logging import setup_logging
from sigil.core.signature_codec import read_signature, write_signature
from sigil.core.signer import is_key_hint_match, sign_file, verify_file
from sigil.errors import AuthenticationError, SigilError

logger = logging.getLogger(__name__)

_PASSPHRASE_ENV = "SIGIL_PASSPHRASE"


def _resolve_passphrase(prompt: str, confirm: bool = False) -> str:
    """Get the passphrase from the environment or an interactive prompt."""
    env_passphrase = os.environ.get(_PASSPHRASE_ENV)
    if env_passphrase is not None:
        return env_passphrase
    return click.prompt(
        prompt,
        type=str,
        default="",
        show_default=False,
        hide_input=True,
        confirmation_prompt=confirm,
    )


def _build_hasher(settings: SigilSettings) -> ChunkedHasher:
    factory = default_reader if settings.hashing.use_mmap else BufferedWindowReader
    return ChunkedHasher(window_size=settings.hashing.window_size, reader_factory=factory)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Optional YAML settings file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Generate Ed25519 keys, sign files and verify signatures."""
    try:
        settings = load_config(config_path)
    except (OSError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging(settings.log_level.upper(), json_output=settings.json_logs)
    ctx.obj = settings


@cli.command("generate")
@click.argument("basename", type=click.Path(dir_okay=False))
@click.option("--comment", default="", help="Comment stored in both key files.")
@click.pass_obj
def generate_command(settings: SigilSettings, basename: str, comment: str) -> None:
    """Write a new keypair to BASENAME.pub and BASENAME.key."""
    passphrase = _resolve_passphrase("Passphrase for the private key", confirm=True)
    keypair = generate_keypair()
    codec = KeyCodec(settings.kdf)
    try:
        pub_path, key_path = codec.write_keypair(keypair, basename, passphrase, comment=comment)
    except OSError as exc:
        raise click.ClickException(f"can't write keypair {basename}: {exc}") from exc
    finally:
        keypair.private.wipe()
    click.echo(f"Public key: {pub_path}")
    click.echo(f"Private key: {key_path}")


@cli.command("sign")
@click.argument("keyfile", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Signature path (default: FILE.sig).",
)
@click.option("--comment", default="", help="Comment stored in the signature.")
@click.pass_obj
def sign_command(settings: SigilSettings, keyfile: Path, file: Path, output: Path | None, comment: str) -> None:
    """Sign FILE with the private key in KEYFILE."""
    codec = KeyCodec(settings.kdf)
    passphrase = _resolve_passphrase(f"Passphrase for {keyfile}")
    try:
        with codec.read_private_key(keyfile, passphrase) as sk:
            signature = sign_file(sk, file, hasher=_build_hasher(settings))
    except AuthenticationError as exc:
        raise click.ClickException(f"{keyfile}: {exc}") from exc
    except (OSError, SigilError) as exc:
        raise click.ClickException(str(exc)) from exc

    sig_path = output or file.with_name(file.name + ".sig")
    try:
        write_signature(sig_path, signature, comment=comment or str(file))
    except OSError as exc:
        raise click.ClickException(f"can't write signature {sig_path}: {exc}") from exc
    click.echo(f"Signature: {sig_path}")


@cli.command("verify")
@click.argument("pubfile", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--signature",
    "sig_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Signature path (default: FILE.sig).",
)
@click.pass_obj
def verify_command(settings: SigilSettings, pubfile: Path, file: Path, sig_path: Path | None) -> None:
    """Verify FILE against PUBFILE; exits 1 when the signature is invalid."""
    codec = KeyCodec(settings.kdf)
    sig_path = sig_path or file.with_name(file.name + ".sig")
    try:
        pk = codec.read_public_key(pubfile)
        signature = read_signature(sig_path)
        if signature.key_hint and not is_key_hint_match(signature, pk):
            logger.warning("signature %s names a different key than %s", sig_path, pubfile)
        ok = verify_file(pk, file, signature, hasher=_build_hasher(settings))
    except (OSError, SigilError) as exc:
        raise click.ClickException(str(exc)) from exc

    if ok:
        click.echo(f"{file}: signature OK")
        return
    click.echo(f"{file}: signature verification FAILED", err=True)
    sys.exit(1)


__all__ = ["cli"]


if __name__ == "__main__":
    cli()
