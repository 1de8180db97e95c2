"""Password protection for secret keys stored in the keychain.

An encrypted secret file holds one line::

    fernet$<iterations>$<salt-hex>$<fernet-token>

The password is stretched via PBKDF2-HMAC-SHA256 with a per-key random salt
into a Fernet key; the token wraps the 32 raw secret bytes. Plaintext secret
files hold 64 hex characters instead, so the two forms never collide.
"""

from __future__ import annotations

import hashlib
import os
from base64 import urlsafe_b64encode

from cryptography.fernet import Fernet, InvalidToken

from signr.errors import CryptoError

ENCRYPTED_PREFIX = "fernet"
DEFAULT_ITERATIONS = 600_000
_SALT_SIZE = 16
_FIELD_SEPARATOR = "$"


def is_encrypted(record: str) -> bool:
    return record.strip().startswith(ENCRYPTED_PREFIX + _FIELD_SEPARATOR)


def _password_buffer(password: str | bytes | bytearray) -> bytearray:
    if isinstance(password, str):
        return bytearray(password.encode("utf-8"))
    return bytearray(password)


def wipe(buffer: bytearray) -> None:
    """Overwrite ``buffer`` in place with zeros."""
    for index in range(len(buffer)):
        buffer[index] = 0


class PassphraseCipher:
    """Fernet cipher keyed by a user-provided password.

    The password is copied into a mutable buffer, stretched and then zeroed;
    only the derived Fernet key stays referenced, for the lifetime of the
    cipher object.
    """

    def __init__(
        self,
        password: str | bytes | bytearray,
        salt: bytes,
        iterations: int = DEFAULT_ITERATIONS,
    ) -> None:
        if not password:
            raise CryptoError("a password is required for encrypted keys")
        self._salt = salt
        self._iterations = iterations
        self._fernet = Fernet(self._derive_key(password, salt, iterations))

    @classmethod
    def fresh(cls, password: str | bytes | bytearray, iterations: int = DEFAULT_ITERATIONS) -> PassphraseCipher:
        return cls(password, os.urandom(_SALT_SIZE), iterations)

    def seal(self, secret: bytes | bytearray) -> str:
        token = self._fernet.encrypt(bytes(secret)).decode("ascii")
        return _FIELD_SEPARATOR.join(
            [ENCRYPTED_PREFIX, str(self._iterations), self._salt.hex(), token],
        )

    def open_token(self, token: str) -> bytearray:
        try:
            return bytearray(self._fernet.decrypt(token.encode("ascii")))
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise CryptoError("could not decrypt secret key, wrong password?") from exc

    @staticmethod
    def _derive_key(password: str | bytes | bytearray, salt: bytes, iterations: int) -> bytes:
        """PBKDF2 stretch the password into a Fernet key."""
        buffer = _password_buffer(password)
        try:
            dk = hashlib.pbkdf2_hmac("sha256", buffer, salt, iterations)
        finally:
            wipe(buffer)
        return urlsafe_b64encode(dk)


def seal_secret(
    secret: bytes | bytearray,
    password: str | bytes | bytearray,
    iterations: int = DEFAULT_ITERATIONS,
) -> str:
    return PassphraseCipher.fresh(password, iterations).seal(secret)


def open_secret(record: str, password: str | bytes | bytearray | None) -> bytearray:
    """Decrypt a ``fernet$...`` record back to the raw secret bytes."""
    fields = record.strip().split(_FIELD_SEPARATOR)
    if len(fields) != 4 or fields[0] != ENCRYPTED_PREFIX:
        raise CryptoError("encrypted secret record is malformed")
    _, iterations_text, salt_hex, token = fields
    try:
        iterations = int(iterations_text)
        salt = bytes.fromhex(salt_hex)
    except ValueError as exc:
        raise CryptoError("encrypted secret record is malformed") from exc
    if iterations < 1:
        raise CryptoError("encrypted secret record is malformed")
    if password is None:
        raise CryptoError("a password is required for encrypted keys")

    return PassphraseCipher(password, salt, iterations).open_token(token)


__all__ = [
    "DEFAULT_ITERATIONS",
    "ENCRYPTED_PREFIX",
    "PassphraseCipher",
    "is_encrypted",
    "open_secret",
    "seal_secret",
    "wipe",
]
