from __future__ import annotations

import hashlib
import weakref

import pytest
from embit import ec
from signr.core import schnorr
from signr.errors import CryptoError, InputError
from signr.secrets import wipe

# BIP-340 test vector 0.
VECTOR_SECRET = bytes.fromhex("00" * 31 + "03")
VECTOR_PUBKEY = bytes.fromhex("f9308a019258c31049344f85f89d5229b531c845836f99b08601f113bce036f9")
DIGEST = hashlib.sha256(b"signr").digest()


def test_public_key_matches_vector() -> None:
    assert schnorr.public_key_from_secret(bytearray(VECTOR_SECRET)) == VECTOR_PUBKEY


def test_signature_survives_wiping_the_caller_buffer() -> None:
    secret = bytearray(VECTOR_SECRET)

    signature = schnorr.sign(secret, DIGEST)
    wipe(secret)

    assert secret == bytearray(32)
    assert schnorr.verify(VECTOR_PUBKEY, DIGEST, signature) is True


def test_embit_key_is_released_after_signing(monkeypatch: pytest.MonkeyPatch) -> None:
    built: list[weakref.ref[ec.PrivateKey]] = []
    original = schnorr._private_key

    def _tracking(secret: bytes | bytearray) -> ec.PrivateKey:
        key = original(secret)
        built.append(weakref.ref(key))
        return key

    monkeypatch.setattr(schnorr, "_private_key", _tracking)

    schnorr.sign(bytearray(VECTOR_SECRET), DIGEST)
    schnorr.public_key_from_secret(bytearray(VECTOR_SECRET))

    assert len(built) == 2
    assert all(ref() is None for ref in built)


@pytest.mark.parametrize("secret", [bytes(32), bytes(31), b"\xff" * 32])
def test_invalid_secret(secret: bytes) -> None:
    with pytest.raises(InputError):
        schnorr.validate_secret(secret)


def test_sign_rejects_short_digest() -> None:
    with pytest.raises(CryptoError):
        schnorr.sign(VECTOR_SECRET, DIGEST[:16])


def test_verify_other_digest_is_false() -> None:
    signature = schnorr.sign(VECTOR_SECRET, DIGEST)
    assert schnorr.verify(VECTOR_PUBKEY, hashlib.sha256(b"other").digest(), signature) is False


def test_generated_secret_is_valid() -> None:
    secret = schnorr.generate_secret()
    assert len(secret) == schnorr.SECRET_KEY_SIZE
    schnorr.validate_secret(secret)
