"""signr CLI entry point and dependency wiring."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
from pydantic import ValidationError

from signr.config import SignrSettings, load_config, save_default_key
from signr.core.identity import generate_identity, import_identity
from signr.core.keystore import KeyStore
from signr.core.logging import setup_logging
from signr.core.signer import Signer
from signr.core.verifier import AnchorVerifier, SignatureVerifier
from signr.errors import NotFoundError, SignrError

_PASSPHRASE_ENV = "SIGNR_PASSPHRASE"
_CUSTOM_HELP = (
    "custom namespace; whitespace runs become hyphens. Signer and verifier "
    "must agree on it out of band"
)
_VALIDITY = {True: "valid", False: "invalid"}


@dataclass(slots=True)
class _CliState:
    settings: SignrSettings
    config_path: Path

    @property
    def store(self) -> KeyStore:
        return KeyStore.from_settings(self.settings)


@contextmanager
def _core_errors() -> Iterator[None]:
    try:
        yield
    except SignrError as exc:
        raise click.ClickException(f"{exc.kind}: {exc}") from exc


def _resolve_passphrase(confirm: bool = False) -> str:
    """Get the key passphrase from env or an interactive prompt."""
    env_passphrase = os.environ.get(_PASSPHRASE_ENV)
    if env_passphrase:
        return env_passphrase
    return click.prompt("Passphrase", type=str, hide_input=True, confirmation_prompt=confirm)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="config file (default: <data dir>/signr.yaml)",
)
@click.option(
    "--data-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="keychain directory",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="prints more things")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, data_dir: Path | None, verbose: bool) -> None:
    """A keychain, signer and verifier for secp256k1 Schnorr keys.

    Works like ssh-keygen: named key pairs live as files in a user directory
    next to an optional configuration file.
    """
    try:
        settings = load_config(config_path)
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        raise click.ClickException(f"cannot load config: {exc}") from exc

    updates: dict[str, object] = {}
    if data_dir is not None:
        updates["data_dir"] = data_dir.expanduser()
    if verbose:
        updates["verbose"] = True
    if updates:
        settings = settings.model_copy(update=updates)

    setup_logging(logging.DEBUG if settings.verbose else logging.INFO, json_output=settings.json_logs)
    ctx.obj = _CliState(settings=settings, config_path=config_path or settings.config_path)


@cli.command("gen")
@click.argument("name")
@click.option("--encrypt", is_flag=True, default=False, help="protect the secret key with a passphrase")
@click.pass_obj
def gen_command(state: _CliState, name: str, encrypt: bool) -> None:
    """Generate a new key pair and store it as NAME."""
    password = _resolve_passphrase(confirm=True) if encrypt else None
    with _core_errors():
        record = generate_identity(state.store, name, password=password)
    click.echo(record.public_key)


@cli.command("import")
@click.argument("secret")
@click.argument("name")
@click.option("--encrypt", is_flag=True, default=False, help="protect the secret key with a passphrase")
@click.pass_obj
def import_command(state: _CliState, secret: str, name: str, encrypt: bool) -> None:
    """Import a secret key given in hex or nsec format as NAME."""
    password = _resolve_passphrase(confirm=True) if encrypt else None
    with _core_errors():
        record = import_identity(state.store, secret, name, password=password)
    click.echo(record.public_key)


@cli.command("list")
@click.pass_obj
def list_command(state: _CliState) -> None:
    """List the keys in the keychain; '*' marks the default."""
    default = state.settings.default_key
    store = state.store
    with _core_errors():
        for name in store.list_names():
            record = store.record(name)
            marker = "*" if name == default else " "
            suffix = " (encrypted)" if record.encrypted else ""
            click.echo(f"{marker} {name}{suffix}")


@cli.command("set-default")
@click.argument("name")
@click.pass_obj
def set_default_command(state: _CliState, name: str) -> None:
    """Make NAME the key used when sign and anchor get no key argument."""
    with _core_errors():
        if name not in state.store.list_names():
            raise NotFoundError(f"'{name}' key not found", name=name)
    save_default_key(state.config_path, name)
    click.echo(f"default key set to {name}")


def _password_for(signer: Signer, key_name: str | None) -> str | None:
    resolved = signer.resolve_key(key_name)
    if signer.store.is_encrypted(resolved):
        return _resolve_passphrase()
    return None


@cli.command("sign")
@click.argument("payload")
@click.argument("key", required=False)
@click.option("-k", "--custom", default="", help=_CUSTOM_HELP)
@click.option(
    "--hex",
    "as_hex",
    is_flag=True,
    default=False,
    help="print the bare signature as 128 hex characters",
)
@click.option("--sig-only", is_flag=True, default=False, help="print only the bare nsig signature")
@click.pass_obj
def sign_command(
    state: _CliState,
    payload: str,
    key: str | None,
    custom: str,
    as_hex: bool,
    sig_only: bool,
) -> None:
    """Sign PAYLOAD (a file, '-' for stdin, or a 64-hex hash) with KEY.

    Without KEY the configured default key is used. A 64-hex PAYLOAD is
    signed as a hash and yields a bare signature.
    """
    signer = Signer(state.settings, store=state.store)
    with _core_errors():
        password = _password_for(signer, key)
        signature = signer.sign(
            payload,
            key_name=key,
            password=password,
            custom=custom,
            as_hex=as_hex,
            sig_only=sig_only,
        )
    click.echo(signature)


@cli.command("anchor")
@click.argument("merkle")
@click.argument("key", required=False)
@click.option("-k", "--custom", default="", help=_CUSTOM_HELP)
@click.pass_obj
def anchor_command(state: _CliState, merkle: str, key: str | None, custom: str) -> None:
    """Sign a 64-hex MERKLE hash into an anchor inscription."""
    signer = Signer(state.settings, store=state.store)
    with _core_errors():
        password = _password_for(signer, key)
        inscription = signer.anchor(merkle, key_name=key, password=password, custom=custom)
    click.echo(inscription.encode())


@cli.command("verify")
@click.argument("payload")
@click.argument("signature")
@click.option("--pubkey", default=None, help="npub or keychain name; required for bare signatures")
@click.option("-k", "--custom", default="", help=_CUSTOM_HELP)
@click.pass_obj
def verify_command(state: _CliState, payload: str, signature: str, pubkey: str | None, custom: str) -> None:
    """Verify SIGNATURE over PAYLOAD."""
    with _core_errors():
        if pubkey and not pubkey.lower().startswith("npub1"):
            pubkey = state.store.get_public_key(pubkey) if state.store.exists(pubkey) else pubkey
        valid = SignatureVerifier().verify(payload, signature, custom=custom, public_key=pubkey)
    click.echo(_VALIDITY[valid])


@cli.command("verify-anchor")
@click.argument("inscription")
@click.option("-k", "--custom", default="", help=_CUSTOM_HELP)
@click.pass_obj
def verify_anchor_command(state: _CliState, inscription: str, custom: str) -> None:
    """Verify an anchor inscription.

    The signing material is rebuilt from the inscription's npub and merkle
    hash, then checked against its signature. Pass the same --custom
    namespace the anchor was made with, or a genuine anchor reads as invalid.
    """
    del state
    with _core_errors():
        valid = AnchorVerifier().verify_anchor(inscription, custom=custom)
    click.echo(_VALIDITY[valid])


__all__ = ["cli"]


if __name__ == "__main__":
    cli()
