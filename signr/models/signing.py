from __future__ import annotations

import re
from enum import StrEnum

_RAW_HASH = re.compile(r"[0-9a-fA-F]{64}")


class OutputMode(StrEnum):
    """How a signature is rendered.

    The two bare modes never carry a nonce; ``full_anchor`` always does.
    """

    bare_hex = "bare_hex"
    bare_encoded = "bare_encoded"
    full_anchor = "full_anchor"

    @property
    def skips_randomness(self) -> bool:
        return self is not OutputMode.full_anchor


def is_raw_hash(payload_ref: str) -> bool:
    """True when ``payload_ref`` is exactly 64 hex characters."""
    return _RAW_HASH.fullmatch(payload_ref) is not None


def resolve_output_mode(payload_ref: str, as_hex: bool = False, sig_only: bool = False) -> OutputMode:
    if as_hex:
        return OutputMode.bare_hex
    if sig_only or is_raw_hash(payload_ref):
        return OutputMode.bare_encoded
    return OutputMode.full_anchor


__all__ = ["OutputMode", "is_raw_hash", "resolve_output_mode"]
