"""Human-readable bech32 encodings for keys and signatures.

``npub`` carries a 32-byte x-only public key, ``nsec`` a 32-byte secret and
``nsig`` a 64-byte Schnorr signature. Signatures exceed the 90-character cap
that BIP-173 decoders apply to addresses, so decoding checks the checksum
directly instead of going through ``bech32_decode``.
"""

from __future__ import annotations

from embit.bech32 import CHARSET, Encoding, bech32_encode, bech32_verify_checksum, convertbits

from signr.errors import FormatError, InputError

PUBLIC_KEY_HRP = "npub"
SECRET_KEY_HRP = "nsec"
SIGNATURE_HRP = "nsig"

_CHECKSUM_LENGTH = 6
_PAYLOAD_LENGTHS: dict[str, int] = {
    PUBLIC_KEY_HRP: 32,
    SECRET_KEY_HRP: 32,
    SIGNATURE_HRP: 64,
}


def encode(hrp: str, payload: bytes) -> str:
    expected = _PAYLOAD_LENGTHS.get(hrp)
    if expected is not None and len(payload) != expected:
        raise FormatError(
            f"{hrp} payload must be {expected} bytes, got {len(payload)}",
            hrp=hrp,
            length=len(payload),
        )
    words = convertbits(payload, 8, 5)
    if words is None:
        raise FormatError(f"cannot convert {hrp} payload to bech32 words", hrp=hrp)
    return bech32_encode(Encoding.BECH32, hrp, words)


def decode(value: str, hrp: str) -> bytes:
    """Decode ``value`` and check that it carries the expected ``hrp``."""
    text = value.strip()
    if text.lower() != text and text.upper() != text:
        raise InputError("bech32 string has mixed case", hrp=hrp)
    text = text.lower()

    separator = text.rfind("1")
    if separator < 1 or separator + _CHECKSUM_LENGTH + 1 > len(text):
        raise InputError("bech32 string is too short or has no separator", hrp=hrp)

    found_hrp = text[:separator]
    if found_hrp != hrp:
        raise InputError(f"expected {hrp} encoding, got {found_hrp!r}", hrp=hrp, found=found_hrp)

    data = [CHARSET.find(char) for char in text[separator + 1 :]]
    if -1 in data:
        raise InputError("bech32 string has characters outside the charset", hrp=hrp)
    if bech32_verify_checksum(found_hrp, data) != Encoding.BECH32:
        raise InputError("bech32 checksum mismatch", hrp=hrp)

    decoded = convertbits(data[:-_CHECKSUM_LENGTH], 5, 8, False)
    if decoded is None:
        raise InputError("bech32 payload has invalid padding", hrp=hrp)

    payload = bytes(decoded)
    expected = _PAYLOAD_LENGTHS.get(hrp)
    if expected is not None and len(payload) != expected:
        raise InputError(
            f"{hrp} payload must be {expected} bytes, got {len(payload)}",
            hrp=hrp,
            length=len(payload),
        )
    return payload


def encode_public_key(public_key: bytes) -> str:
    return encode(PUBLIC_KEY_HRP, public_key)


def decode_public_key(npub: str) -> bytes:
    return decode(npub, PUBLIC_KEY_HRP)


def encode_secret_key(secret: bytes) -> str:
    return encode(SECRET_KEY_HRP, secret)


def decode_secret_key(nsec: str) -> bytes:
    return decode(nsec, SECRET_KEY_HRP)


def encode_signature(signature: bytes) -> str:
    return encode(SIGNATURE_HRP, signature)


def decode_signature(nsig: str) -> bytes:
    return decode(nsig, SIGNATURE_HRP)


__all__ = [
    "PUBLIC_KEY_HRP",
    "SECRET_KEY_HRP",
    "SIGNATURE_HRP",
    "decode",
    "decode_public_key",
    "decode_secret_key",
    "decode_signature",
    "encode",
    "encode_public_key",
    "encode_secret_key",
    "encode_signature",
]
