"""BIP-340 Schnorr primitives over secp256k1, backed by ``embit``."""

from __future__ import annotations

import secrets

from embit import ec

from signr.errors import CryptoError, InputError, RngError

SECRET_KEY_SIZE = 32
PUBLIC_KEY_SIZE = 32
SIGNATURE_SIZE = 64
DIGEST_SIZE = 32


def _private_key(secret: bytes | bytearray) -> ec.PrivateKey:
    """Build an embit key from ``secret``.

    embit only takes immutable ``bytes`` and keeps its own copy inside the key
    object. Neither copy can be zeroed, so callers drop the returned key as
    soon as they are done and wipe their own ``bytearray``.
    """
    if len(secret) != SECRET_KEY_SIZE:
        raise InputError(
            f"secret key must be {SECRET_KEY_SIZE} bytes, got {len(secret)}",
            length=len(secret),
        )
    try:
        return ec.PrivateKey(bytes(secret))
    except (ec.ECError, ValueError) as exc:
        raise InputError("secret key is not a valid secp256k1 scalar") from exc


def generate_secret() -> bytes:
    """Draw secret scalars from the OS CSPRNG until one is in range."""
    while True:
        try:
            candidate = secrets.token_bytes(SECRET_KEY_SIZE)
        except (OSError, NotImplementedError) as exc:
            raise RngError("entropy source failed while generating a key") from exc
        try:
            _private_key(candidate)
        except InputError:
            continue
        return candidate


def validate_secret(secret: bytes | bytearray) -> None:
    _private_key(secret)


def public_key_from_secret(secret: bytes | bytearray) -> bytes:
    """Return the 32-byte x-only public key for ``secret``."""
    key = _private_key(secret)
    try:
        return key.get_public_key().xonly()
    finally:
        del key


def sign(secret: bytes | bytearray, digest: bytes) -> bytes:
    if len(digest) != DIGEST_SIZE:
        raise CryptoError(f"digest must be {DIGEST_SIZE} bytes", length=len(digest))
    key = _private_key(secret)
    try:
        return key.schnorr_sign(digest).serialize()
    except (ec.ECError, ValueError) as exc:
        raise CryptoError("schnorr signing failed") from exc
    finally:
        del key


def verify(public_key: bytes, digest: bytes, signature: bytes) -> bool:
    if len(public_key) != PUBLIC_KEY_SIZE:
        raise InputError(f"public key must be {PUBLIC_KEY_SIZE} bytes", length=len(public_key))
    if len(signature) != SIGNATURE_SIZE:
        raise InputError(f"signature must be {SIGNATURE_SIZE} bytes", length=len(signature))
    if len(digest) != DIGEST_SIZE:
        raise CryptoError(f"digest must be {DIGEST_SIZE} bytes", length=len(digest))

    try:
        point = ec.PublicKey.from_xonly(public_key)
    except (ec.ECError, ValueError) as exc:
        raise InputError("public key is not a valid secp256k1 point") from exc

    try:
        return bool(point.schnorr_verify(ec.SchnorrSig(signature), digest))
    except (ec.ECError, ValueError) as exc:
        raise CryptoError("schnorr verification failed") from exc


__all__ = [
    "DIGEST_SIZE",
    "PUBLIC_KEY_SIZE",
    "SECRET_KEY_SIZE",
    "SIGNATURE_SIZE",
    "generate_secret",
    "public_key_from_secret",
    "sign",
    "validate_secret",
    "verify",
]
