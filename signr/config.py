from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILENAME = "signr.yaml"
_ENV_PREFIX = "SIGNR_"
# Text fields keep the raw environment string.
_TEXT_FIELDS = frozenset({"data_dir", "default_key"})


def _default_data_dir() -> Path:
    return Path.home() / ".signr"


class SignrSettings(BaseSettings):
    """Runtime configuration, built once at the call boundary and passed in."""

    data_dir: Path = Field(default_factory=_default_data_dir)
    default_key: str | None = None
    verbose: bool = False
    json_logs: bool = False
    kdf_iterations: int = Field(default=600_000, ge=1)

    model_config = SettingsConfigDict(
        env_prefix=_ENV_PREFIX,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def _expand_data_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("default_key", mode="before")
    @classmethod
    def _blank_default_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


def _coerce_env_value(field: str, value: str) -> object:
    if field in _TEXT_FIELDS:
        return value
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    for key, raw_value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        field = key[len(_ENV_PREFIX) :].lower()
        if field in SignrSettings.model_fields:
            merged[field] = _coerce_env_value(field, raw_value)
    return merged


def _read_config_mapping(config_path: Path) -> dict[str, object]:
    loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("config file must contain a top-level mapping")

    raw = loaded.get("signr", loaded)
    if not isinstance(raw, dict):
        raise ValueError("signr config section must be a mapping")
    return raw


def load_config(path: str | Path | None = None) -> SignrSettings:
    """Load settings from YAML plus ``SIGNR_*`` environment overrides.

    With no explicit ``path`` the file is looked up as ``signr.yaml`` inside
    the data directory; a missing file there just means defaults. An explicit
    path that does not exist is an error.
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"config file not found: {config_path}")
    else:
        config_path = SignrSettings.model_validate(_apply_env_overrides({})).config_path
        if not config_path.exists():
            return SignrSettings.model_validate(_apply_env_overrides({}))

    merged = _apply_env_overrides(_read_config_mapping(config_path))
    return SignrSettings.model_validate(merged)


def save_default_key(config_path: Path, name: str) -> None:
    """Persist ``default_key`` into the YAML config, keeping other entries."""
    root: dict[str, object] = {}
    if config_path.exists():
        loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ValueError("config file must contain a top-level mapping")
        root = loaded

    section = root.get("signr")
    if isinstance(section, dict):
        section["default_key"] = name
    else:
        root["default_key"] = name

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.safe_dump(root, sort_keys=False), encoding="utf-8")


__all__ = [
    "CONFIG_FILENAME",
    "SignrSettings",
    "load_config",
    "save_default_key",
]
