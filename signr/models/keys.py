from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

_KEY_NAME_FORBIDDEN = re.compile(r"[\s/\\]")


class KeyFileKind(StrEnum):
    """Keychain artifact classes; values double as the on-disk file suffixes."""

    secret = "sec"
    public = "pub"


def validate_key_name(name: str) -> str:
    if not name:
        raise ValueError("key name must not be empty")
    if name.startswith("."):
        raise ValueError("key name must not start with '.'")
    if _KEY_NAME_FORBIDDEN.search(name):
        raise ValueError("key name must not contain whitespace or path separators")
    return name


class KeyPairRecord(BaseModel):
    """Public view of one keychain entry. Secret bytes never live on this model."""

    model_config = ConfigDict(frozen=True)

    name: str
    public_key: str
    encrypted: bool = False

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_key_name(value)

    @field_validator("public_key")
    @classmethod
    def _strip_public_key(cls, value: str) -> str:
        return value.strip()


__all__ = ["KeyFileKind", "KeyPairRecord", "validate_key_name"]
