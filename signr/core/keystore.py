"""On-disk keychain: one ``<name>.sec`` and one ``<name>.pub`` file per key.

Secret files hold either 64 hex characters or a password-sealed record (see
``signr.secrets``) and are created with mode ``0o600``. A secret file whose
mode has been relaxed to any group/other bit is refused on read. Every write
goes through a temp file in the same directory followed by ``os.replace``,
so a crash never leaves a partially written key visible under its real name.
"""

from __future__ import annotations

import contextlib
import logging
import os
import stat
import tempfile
from pathlib import Path

from signr.config import SignrSettings
from signr.errors import CryptoError, InputError, InsecurePermissionError, KeychainIOError, NotFoundError
from signr.models.keys import KeyFileKind, KeyPairRecord, validate_key_name
from signr.secrets import DEFAULT_ITERATIONS, is_encrypted, open_secret, seal_secret, wipe

logger = logging.getLogger(__name__)

_SECRET_MODE = 0o600
_PUBLIC_MODE = 0o644
_DIR_MODE = 0o700
_INSECURE_BITS = 0o077
_SECRET_SIZE = 32


class KeyStore:
    """Persists and retrieves named key pairs in a single keychain directory."""

    def __init__(self, data_dir: Path, kdf_iterations: int = DEFAULT_ITERATIONS) -> None:
        self._data_dir = Path(data_dir)
        self._kdf_iterations = kdf_iterations

    @classmethod
    def from_settings(cls, settings: SignrSettings) -> KeyStore:
        return cls(settings.data_dir, kdf_iterations=settings.kdf_iterations)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, name: str, kind: KeyFileKind) -> Path:
        return self._data_dir / f"{self._checked_name(name)}.{kind.value}"

    def save(
        self,
        name: str,
        secret: bytes | bytearray,
        public_key: str,
        password: str | bytes | bytearray | None = None,
    ) -> KeyPairRecord:
        """Write the secret and public files for ``name``, each atomically."""
        name = self._checked_name(name)
        if len(secret) != _SECRET_SIZE:
            raise InputError(f"secret key must be {_SECRET_SIZE} bytes", length=len(secret))

        if password:
            secret_record = seal_secret(secret, password, self._kdf_iterations)
        else:
            secret_record = bytes(secret).hex()

        self._ensure_dir()
        self._write_atomic(self.path_for(name, KeyFileKind.secret), secret_record + "\n", _SECRET_MODE)
        self._write_atomic(self.path_for(name, KeyFileKind.public), public_key.strip() + "\n", _PUBLIC_MODE)
        logger.debug("saved key pair %s in %s", name, self._data_dir)
        return KeyPairRecord(name=name, public_key=public_key, encrypted=bool(password))

    def read_secured(self, filename: str, kind: KeyFileKind) -> bytes:
        """Read a keychain file, refusing secret files that others can read."""
        path = self._data_dir / filename
        try:
            info = path.stat()
        except OSError as exc:
            raise KeychainIOError(f"cannot stat keychain file {filename}: {exc}", path=str(path)) from exc

        mode = stat.S_IMODE(info.st_mode)
        if kind is KeyFileKind.secret and mode & _INSECURE_BITS:
            raise InsecurePermissionError(
                f"secret key {filename} has insecure permissions {mode:04o}",
                path=str(path),
                mode=mode,
            )

        try:
            return path.read_bytes()
        except OSError as exc:
            raise KeychainIOError(f"cannot read keychain file {filename}: {exc}", path=str(path)) from exc

    def get_key(self, name: str, password: str | bytes | bytearray | None = None) -> bytearray:
        """Return the raw secret for ``name``. The caller must ``wipe`` it after use."""
        record = self._read_secret_record(name)
        if is_encrypted(record):
            secret = open_secret(record, password)
        else:
            try:
                secret = bytearray(bytes.fromhex(record.strip()))
            except ValueError as exc:
                raise CryptoError(f"stored secret for {name} is not valid hex", name=name) from exc

        if len(secret) != _SECRET_SIZE:
            wipe(secret)
            raise CryptoError(f"stored secret for {name} has the wrong length", name=name)
        return secret

    def get_public_key(self, name: str) -> str:
        filename = self.path_for(name, KeyFileKind.public).name
        raw = self.read_secured(filename, KeyFileKind.public)
        try:
            return raw.decode("ascii").strip()
        except UnicodeDecodeError as exc:
            raise KeychainIOError(f"public key file {filename} is not ASCII", name=name) from exc

    def is_encrypted(self, name: str) -> bool:
        return is_encrypted(self._read_secret_record(name))

    def exists(self, name: str) -> bool:
        return self.path_for(name, KeyFileKind.secret).is_file()

    def list_names(self) -> list[str]:
        """Names of every key with a secret file, in lexicographic order."""
        if not self._data_dir.is_dir():
            return []
        suffix = f".{KeyFileKind.secret.value}"
        names = [
            entry.name[: -len(suffix)]
            for entry in self._data_dir.iterdir()
            if entry.is_file() and entry.name.endswith(suffix) and not entry.name.startswith(".")
        ]
        return sorted(names)

    def record(self, name: str) -> KeyPairRecord:
        return KeyPairRecord(name=name, public_key=self.get_public_key(name), encrypted=self.is_encrypted(name))

    def _read_secret_record(self, name: str) -> str:
        name = self._checked_name(name)
        if not self.exists(name):
            raise NotFoundError(f"key {name!r} not found", name=name)
        raw = self.read_secured(f"{name}.{KeyFileKind.secret.value}", KeyFileKind.secret)
        try:
            return raw.decode("ascii")
        except UnicodeDecodeError as exc:
            raise CryptoError(f"stored secret for {name} is not ASCII", name=name) from exc

    def _ensure_dir(self) -> None:
        try:
            self._data_dir.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
        except OSError as exc:
            raise KeychainIOError(f"cannot create keychain directory: {exc}", path=str(self._data_dir)) from exc

    def _write_atomic(self, path: Path, content: str, mode: int) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._data_dir, prefix=f".{path.name}.", suffix=".tmp")
        except OSError as exc:
            raise KeychainIOError(f"cannot create temp file for {path.name}: {exc}", path=str(path)) from exc

        try:
            with os.fdopen(fd, "w", encoding="ascii") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise KeychainIOError(f"cannot write {path.name}: {exc}", path=str(path)) from exc

    @staticmethod
    def _checked_name(name: str) -> str:
        try:
            return validate_key_name(name)
        except ValueError as exc:
            raise InputError(str(exc), name=name) from exc


__all__ = ["KeyStore"]
