"""Key generation and import into the keychain."""

from __future__ import annotations

import logging
import re

from signr.core import encoding, schnorr
from signr.core.keystore import KeyStore
from signr.core.logging import operation_scope
from signr.errors import InputError
from signr.models.keys import KeyPairRecord
from signr.secrets import wipe

logger = logging.getLogger(__name__)

_HEX_SECRET = re.compile(r"[0-9a-fA-F]{64}")


def _ensure_new(store: KeyStore, name: str) -> None:
    if store.exists(name):
        raise InputError(f"key {name!r} already exists in the keychain", name=name)


def _store(
    store: KeyStore,
    name: str,
    secret: bytearray,
    password: str | bytes | bytearray | None,
) -> KeyPairRecord:
    public_raw = schnorr.public_key_from_secret(secret)
    npub = encoding.encode_public_key(public_raw)
    record = store.save(name, secret, npub, password=password)
    logger.info("stored key pair %s public hex %s", name, public_raw.hex())
    logger.debug("stored key pair %s npub %s", name, npub)
    return record


def generate_identity(
    store: KeyStore,
    name: str,
    password: str | bytes | bytearray | None = None,
) -> KeyPairRecord:
    """Create a fresh secp256k1 key pair and save it under ``name``."""
    with operation_scope("generate", key_name=name):
        _ensure_new(store, name)
        secret = bytearray(schnorr.generate_secret())
        try:
            return _store(store, name, secret, password)
        finally:
            wipe(secret)


def decode_secret(secret_text: str) -> bytearray:
    """Accept an ``nsec1...`` string or 64 hex characters."""
    text = secret_text.strip()
    if text.lower().startswith(encoding.SECRET_KEY_HRP + "1"):
        secret = bytearray(encoding.decode_secret_key(text))
    elif _HEX_SECRET.fullmatch(text):
        secret = bytearray(bytes.fromhex(text))
    else:
        raise InputError("secret key must be an nsec string or 64 hex characters")

    try:
        schnorr.validate_secret(secret)
    except InputError:
        wipe(secret)
        raise
    return secret


def import_identity(
    store: KeyStore,
    secret_text: str,
    name: str,
    password: str | bytes | bytearray | None = None,
) -> KeyPairRecord:
    """Decode an existing secret key and save it under ``name``."""
    with operation_scope("import", key_name=name):
        _ensure_new(store, name)
        secret = decode_secret(secret_text)
        try:
            return _store(store, name, secret, password)
        finally:
            wipe(secret)


__all__ = ["decode_secret", "generate_identity", "import_identity"]
