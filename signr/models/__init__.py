from __future__ import annotations

from signr.models.anchor import ANCHOR_VERSION, AnchorInscription
from signr.models.keys import KeyFileKind, KeyPairRecord, validate_key_name
from signr.models.signing import OutputMode, is_raw_hash, resolve_output_mode

__all__ = [
    "ANCHOR_VERSION",
    "AnchorInscription",
    "KeyFileKind",
    "KeyPairRecord",
    "OutputMode",
    "is_raw_hash",
    "resolve_output_mode",
    "validate_key_name",
]
