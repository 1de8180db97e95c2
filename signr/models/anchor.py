from __future__ import annotations

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from signr.core import encoding
from signr.errors import InputError
from signr.models.signing import is_raw_hash

ANCHOR_VERSION = "anchor0"
_FIELD_SEPARATOR = ":"


class AnchorInscription(BaseModel):
    """Signed anchor: signer npub, content/merkle hash and nsig signature.

    Wire form is ``anchor0:<npub>:<merkle-hex>:<nsig>``. Neither ``:`` nor
    ``_`` occurs in bech32 or hex, so the split is unambiguous.
    """

    model_config = ConfigDict(frozen=True)

    public_key: str
    merkle_hash: str
    signature: str

    @field_validator("public_key")
    @classmethod
    def _check_public_key(cls, value: str) -> str:
        value = value.strip().lower()
        encoding.decode_public_key(value)
        return value

    @field_validator("merkle_hash")
    @classmethod
    def _check_merkle_hash(cls, value: str) -> str:
        value = value.strip()
        if not is_raw_hash(value):
            raise ValueError("merkle hash must be 64 hex characters")
        return value.lower()

    @field_validator("signature")
    @classmethod
    def _check_signature(cls, value: str) -> str:
        value = value.strip().lower()
        encoding.decode_signature(value)
        return value

    def encode(self) -> str:
        return _FIELD_SEPARATOR.join(
            [ANCHOR_VERSION, self.public_key, self.merkle_hash, self.signature],
        )

    @classmethod
    def parse(cls, text: str) -> AnchorInscription:
        """Decode an inscription string; anything malformed is an ``InputError``."""
        fields = text.strip().split(_FIELD_SEPARATOR)
        if len(fields) != 4:
            raise InputError(
                f"anchor inscription must have 4 fields, got {len(fields)}",
                fields=len(fields),
            )
        version, public_key, merkle_hash, signature = fields
        if version != ANCHOR_VERSION:
            raise InputError(f"unsupported anchor version {version!r}", version=version)
        try:
            return cls(public_key=public_key, merkle_hash=merkle_hash, signature=signature)
        except ValidationError as exc:
            raise InputError(f"malformed anchor inscription: {exc.errors()[0]['msg']}") from exc

    def public_key_bytes(self) -> bytes:
        return encoding.decode_public_key(self.public_key)

    def signature_bytes(self) -> bytes:
        return encoding.decode_signature(self.signature)


__all__ = ["ANCHOR_VERSION", "AnchorInscription"]
