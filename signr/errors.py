"""Closed error taxonomy for keychain, signing and verification failures.

Every failure a core operation can surface is one of the classes below.
Callers branch on the class (or on ``kind``) instead of parsing messages;
``context`` carries the structured details (key name, path, mode, ...).
"""

from __future__ import annotations

from typing import ClassVar


class SignrError(Exception):
    """Base class for all signr failures."""

    kind: ClassVar[str] = "SignrError"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, object] = context

    def __str__(self) -> str:
        return self.message


class InputError(SignrError, ValueError):
    """Malformed arguments, bad hex, wrong-length data or a malformed inscription."""

    kind = "InputError"


class NotFoundError(SignrError, LookupError):
    """The named key does not exist in the keychain."""

    kind = "NotFoundError"


class InsecurePermissionError(SignrError, PermissionError):
    """A secret key file is readable by group or other."""

    kind = "PermissionError"


class CryptoError(SignrError):
    """Signing, verification or decryption primitive failure."""

    kind = "CryptoError"


class KeychainIOError(SignrError, OSError):
    """File read, write or rename failure."""

    kind = "IOError"


class RngError(SignrError):
    """The OS entropy source failed."""

    kind = "RngError"


class FormatError(SignrError):
    """Encoding failure while rendering output."""

    kind = "FormatError"


__all__ = [
    "CryptoError",
    "FormatError",
    "InputError",
    "InsecurePermissionError",
    "KeychainIOError",
    "NotFoundError",
    "RngError",
    "SignrError",
]
