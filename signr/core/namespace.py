"""Canonical signing preimage construction.

A preimage is an ordered list of segments joined with ``_``::

    signr_0_SHA256_SCHNORR[_<custom>][_<nonce-hex>]_<npub>_<payload-hash-hex>

The first four segments are fixed literals. A protocol revision bumps the
version segment; it never changes what existing signatures mean. After the
prefix comes an optional custom namespace that isolates one application's
signatures from another's, then the nonce (full-form signatures only), then
the signer's public key, which keeps different keys' signatures apart even
inside one protocol, and finally the payload hash.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

PROTOCOL_ID = "signr"
PROTOCOL_VERSION = "0"
HASH_ALGORITHM = "SHA256"
SIGNATURE_ALGORITHM = "SCHNORR"
DELIMITER = "_"

_DEFAULT_SEGMENTS: tuple[str, ...] = (
    PROTOCOL_ID,
    PROTOCOL_VERSION,
    HASH_ALGORITHM,
    SIGNATURE_ALGORITHM,
)


def default_segments() -> list[str]:
    return list(_DEFAULT_SEGMENTS)


def sanitize_custom(custom: str) -> str:
    """Trim and collapse every internal whitespace run into one hyphen."""
    return "-".join(custom.split())


def with_custom(segments: Sequence[str], custom: str) -> list[str]:
    """Append the sanitized custom namespace; blank input adds nothing."""
    result = list(segments)
    if not custom:
        return result
    sanitized = sanitize_custom(custom)
    if sanitized:
        result.append(sanitized)
    return result


def render(segments: Sequence[str]) -> str:
    return DELIMITER.join(segments)


def format_full_signature(segments: Sequence[str], signature_encoded: str) -> str:
    return render(segments) + DELIMITER + signature_encoded


def digest(preimage: str) -> bytes:
    return hashlib.sha256(preimage.encode("utf-8")).digest()


__all__ = [
    "DELIMITER",
    "HASH_ALGORITHM",
    "PROTOCOL_ID",
    "PROTOCOL_VERSION",
    "SIGNATURE_ALGORITHM",
    "default_segments",
    "digest",
    "format_full_signature",
    "render",
    "sanitize_custom",
    "with_custom",
]
