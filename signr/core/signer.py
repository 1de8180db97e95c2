"""Signing orchestration: keychain + namespacing + nonce + Schnorr.

``sign`` resolves the output mode once, builds the namespaced preimage,
hashes it and signs the digest with the resolved key. Full-form output is
the preimage followed by the nsig signature, which lets anyone holding the
payload verify it without a keychain. Bare output is the signature alone and
is always made without a nonce, so the verifier can rebuild the preimage from
the payload, the public key and the custom namespace.
"""

from __future__ import annotations

import hashlib
import logging
import sys
from pathlib import Path

from signr.config import SignrSettings
from signr.core import encoding, namespace, schnorr
from signr.core.keystore import KeyStore
from signr.core.logging import operation_scope
from signr.core.nonce import SystemNonceSource
from signr.errors import CryptoError, InputError, KeychainIOError, NotFoundError
from signr.models.anchor import AnchorInscription
from signr.models.signing import OutputMode, is_raw_hash, resolve_output_mode
from signr.protocols.crypto import NonceSource
from signr.secrets import wipe

logger = logging.getLogger(__name__)

STDIN_REF = "-"
_CHUNK_SIZE = 64 * 1024


def payload_hash(payload_ref: str) -> bytes:
    """SHA-256 of the referenced file, or the raw hash itself.

    A reference of exactly 64 hex characters is taken as an already computed
    hash. ``-`` hashes standard input.
    """
    if not payload_ref:
        raise InputError("a file or hash to sign must be specified")
    if is_raw_hash(payload_ref):
        return bytes.fromhex(payload_ref)

    hasher = hashlib.sha256()
    try:
        if payload_ref == STDIN_REF:
            stream = sys.stdin.buffer
            while chunk := stream.read(_CHUNK_SIZE):
                hasher.update(chunk)
        else:
            with Path(payload_ref).open("rb") as handle:
                while chunk := handle.read(_CHUNK_SIZE):
                    hasher.update(chunk)
    except OSError as exc:
        raise KeychainIOError(
            f"error while generating hash on file/input {payload_ref}: {exc}",
            path=payload_ref,
        ) from exc
    return hasher.digest()


class Signer:
    """Produces namespaced Schnorr signatures and anchor inscriptions."""

    def __init__(
        self,
        settings: SignrSettings,
        store: KeyStore | None = None,
        nonce_source: NonceSource | None = None,
    ) -> None:
        self._settings = settings
        self._store = store if store is not None else KeyStore.from_settings(settings)
        self._nonce_source = nonce_source if nonce_source is not None else SystemNonceSource()

    @property
    def store(self) -> KeyStore:
        return self._store

    def resolve_key(self, key_name: str | None = None) -> str:
        """Pick the explicit key if it exists, else the configured default."""
        names = self._store.list_names()
        if key_name:
            if key_name not in names:
                raise NotFoundError(f"'{key_name}' key not found", name=key_name)
            return key_name

        default = self._settings.default_key
        if not default:
            raise InputError("no signing key given and no default key configured")
        if default not in names:
            raise NotFoundError(f"default key '{default}' not found", name=default)
        return default

    def sign(
        self,
        payload_ref: str,
        key_name: str | None = None,
        password: str | bytes | bytearray | None = None,
        custom: str = "",
        as_hex: bool = False,
        sig_only: bool = False,
    ) -> str:
        """Sign a file (or raw 64-hex hash) and render it per the output mode.

        ``as_hex`` returns 128 raw hex characters; ``sig_only`` returns the
        bare nsig. A raw hash reference implies ``sig_only``. Otherwise the
        result is the full self-describing form with a fresh nonce.
        """
        mode = resolve_output_mode(payload_ref or "", as_hex=as_hex, sig_only=sig_only)
        return self.sign_with_mode(payload_ref, mode, key_name=key_name, password=password, custom=custom)

    def sign_with_mode(
        self,
        payload_ref: str,
        mode: OutputMode,
        *,
        key_name: str | None = None,
        password: str | bytes | bytearray | None = None,
        custom: str = "",
    ) -> str:
        if not payload_ref:
            raise InputError("a file or hash to sign must be specified")
        signing_key = self.resolve_key(key_name)

        with operation_scope("sign", key_name=signing_key):
            segments = namespace.with_custom(namespace.default_segments(), custom)
            payload_digest = payload_hash(payload_ref)
            if not mode.skips_randomness:
                segments.append(self._nonce_source.next_nonce_hex())
            segments.append(self._store.get_public_key(signing_key))
            segments.append(payload_digest.hex())

            signature = self._sign_segments(signing_key, password, segments)

            if mode is OutputMode.bare_hex:
                return signature.hex()
            encoded = encoding.encode_signature(signature)
            if mode is OutputMode.bare_encoded:
                return encoded
            return namespace.format_full_signature(segments, encoded)

    def anchor(
        self,
        merkle_hash: str,
        key_name: str | None = None,
        password: str | bytes | bytearray | None = None,
        custom: str = "",
    ) -> AnchorInscription:
        """Sign a merkle/content hash into an anchor inscription (never a nonce)."""
        merkle_hash = merkle_hash.strip()
        if not is_raw_hash(merkle_hash):
            raise InputError("anchor merkle hash must be 64 hex characters")
        signing_key = self.resolve_key(key_name)

        with operation_scope("anchor", key_name=signing_key):
            npub = self._store.get_public_key(signing_key)
            segments = namespace.with_custom(namespace.default_segments(), custom)
            segments.extend([npub, merkle_hash.lower()])

            signature = self._sign_segments(signing_key, password, segments)
            return AnchorInscription(
                public_key=npub,
                merkle_hash=merkle_hash,
                signature=encoding.encode_signature(signature),
            )

    def _sign_segments(
        self,
        signing_key: str,
        password: str | bytes | bytearray | None,
        segments: list[str],
    ) -> bytes:
        message = namespace.render(segments)
        logger.info("signing on message: %s", message)
        message_hash = namespace.digest(message)

        secret = self._store.get_key(signing_key, password)
        try:
            return schnorr.sign(secret, message_hash)
        except InputError as exc:
            raise CryptoError(f"stored secret for {signing_key} is unusable", name=signing_key) from exc
        finally:
            wipe(secret)


__all__ = ["STDIN_REF", "Signer", "payload_hash"]
