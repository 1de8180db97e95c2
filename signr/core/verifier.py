"""Verification of anchor inscriptions and full-form or bare signatures.

A signature that does not check out is a normal ``False`` result. Only
malformed input (``InputError``) and primitive faults (``CryptoError``) raise.
Verifying with a different custom namespace than the signer used rebuilds a
different preimage, so the result is ``False`` and never an error.
"""

from __future__ import annotations

import logging
import re

from signr.core import encoding, namespace, schnorr
from signr.core.logging import operation_scope
from signr.core.signer import payload_hash
from signr.errors import InputError
from signr.models.anchor import AnchorInscription
from signr.models.signing import is_raw_hash

logger = logging.getLogger(__name__)

_NONCE = re.compile(r"[0-9a-f]{16}")
_HEX_SIGNATURE = re.compile(r"[0-9a-fA-F]{128}")
_MIN_FULL_SEGMENTS = 7


def _check(segments: list[str], public_key: bytes, signature: bytes) -> bool:
    message = namespace.render(segments)
    logger.debug("verifying message: %s", message)
    valid = schnorr.verify(public_key, namespace.digest(message), signature)
    logger.info("signature %s", "valid" if valid else "invalid")
    return valid


class AnchorVerifier:
    def verify_anchor(self, inscription: str, custom: str = "") -> bool:
        """Check an ``anchor0:`` inscription under the given custom namespace."""
        with operation_scope("verify-anchor"):
            anchor = AnchorInscription.parse(inscription)
            segments = namespace.with_custom(namespace.default_segments(), custom)
            segments.extend([anchor.public_key, anchor.merkle_hash])
            return _check(segments, anchor.public_key_bytes(), anchor.signature_bytes())


class SignatureVerifier:
    def verify(
        self,
        payload_ref: str,
        signature: str,
        custom: str = "",
        public_key: str | None = None,
    ) -> bool:
        """Verify ``signature`` over the payload.

        Full-form signatures carry their own public key. Bare signatures need
        ``public_key`` (an npub) and are checked without a nonce segment.
        """
        with operation_scope("verify"):
            signature = signature.strip()
            if not signature:
                raise InputError("a signature to verify must be specified")
            if namespace.DELIMITER in signature:
                return self._verify_full(payload_ref, signature, custom, public_key)
            return self._verify_bare(payload_ref, signature, custom, public_key)

    def _verify_full(
        self,
        payload_ref: str,
        signature: str,
        custom: str,
        public_key: str | None,
    ) -> bool:
        parts = signature.split(namespace.DELIMITER)
        if len(parts) < _MIN_FULL_SEGMENTS or parts[:4] != namespace.default_segments():
            raise InputError("signature is not in the signr full form")

        npub, embedded_hash, nsig = parts[-3:]
        public_raw = encoding.decode_public_key(npub)
        signature_raw = encoding.decode_signature(nsig)
        if not is_raw_hash(embedded_hash):
            raise InputError("embedded payload hash must be 64 hex characters")

        if public_key is not None and public_key.strip().lower() != npub.lower():
            return False

        custom_parts = namespace.with_custom([], custom)
        if custom_parts:
            custom_parts = custom_parts[0].split(namespace.DELIMITER)
        middle = parts[4:-3]
        if middle[: len(custom_parts)] != custom_parts:
            return False
        # Full-form signatures always end their namespace with exactly one nonce.
        remainder = middle[len(custom_parts) :]
        if len(remainder) != 1 or not _NONCE.fullmatch(remainder[0]):
            return False

        if payload_hash(payload_ref).hex() != embedded_hash.lower():
            logger.info("payload hash does not match the signed hash")
            return False

        return _check(parts[:-1], public_raw, signature_raw)

    def _verify_bare(
        self,
        payload_ref: str,
        signature: str,
        custom: str,
        public_key: str | None,
    ) -> bool:
        if not public_key:
            raise InputError("a public key is required to verify a bare signature")
        npub = public_key.strip().lower()
        public_raw = encoding.decode_public_key(npub)
        if _HEX_SIGNATURE.fullmatch(signature):
            signature_raw = bytes.fromhex(signature)
        else:
            signature_raw = encoding.decode_signature(signature)

        segments = namespace.with_custom(namespace.default_segments(), custom)
        segments.extend([npub, payload_hash(payload_ref).hex()])
        return _check(segments, public_raw, signature_raw)


__all__ = ["AnchorVerifier", "SignatureVerifier"]
