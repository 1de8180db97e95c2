"""Tests for keychain persistence, permissions and password access."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest
from signr.core.identity import import_identity
from signr.core.keystore import KeyStore
from signr.errors import (
    CryptoError,
    InputError,
    InsecurePermissionError,
    KeychainIOError,
    NotFoundError,
)
from signr.models.keys import KeyFileKind

SECRET_HEX = "b7e151628aed2a6abf7158809cf4f3c762e7160f38b4da56a784d9045190cfef"
NPUB = "npub1placeholder"


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestSave:
    def test_writes_secret_owner_only_and_public_world_readable(self, store: KeyStore, data_dir: Path) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)

        assert _mode(data_dir / "alice.sec") == 0o600
        assert _mode(data_dir / "alice.pub") == 0o644
        assert (data_dir / "alice.sec").read_text().strip() == SECRET_HEX
        assert (data_dir / "alice.pub").read_text().strip() == NPUB

    def test_returns_record(self, store: KeyStore) -> None:
        record = store.save("alice", bytes.fromhex(SECRET_HEX), f"  {NPUB}\n")
        assert record.name == "alice"
        assert record.public_key == NPUB
        assert record.encrypted is False

    def test_rejects_wrong_secret_length(self, store: KeyStore) -> None:
        with pytest.raises(InputError):
            store.save("alice", b"\x01" * 31, NPUB)

    @pytest.mark.parametrize("name", ["", ".hidden", "../escape", "with space", "a/b"])
    def test_rejects_unsafe_names(self, store: KeyStore, name: str) -> None:
        with pytest.raises(InputError):
            store.save(name, bytes.fromhex(SECRET_HEX), NPUB)

    def test_failed_rename_leaves_no_secret_or_temp_file(
        self,
        store: KeyStore,
        data_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def _fail(src: str, dst: object) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("signr.core.keystore.os.replace", _fail)

        with pytest.raises(KeychainIOError, match="disk full"):
            store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)

        assert list(data_dir.iterdir()) == []

    def test_overwrite_replaces_content(self, store: KeyStore, data_dir: Path) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)
        store.save("alice", b"\x02" * 32, "npub1other")

        assert (data_dir / "alice.sec").read_text().strip() == "02" * 32
        assert store.get_public_key("alice") == "npub1other"


class TestReadSecured:
    def test_relaxed_secret_mode_is_refused(self, store: KeyStore, data_dir: Path) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)
        os.chmod(data_dir / "alice.sec", 0o640)

        with pytest.raises(InsecurePermissionError) as excinfo:
            store.read_secured("alice.sec", KeyFileKind.secret)
        assert excinfo.value.context["mode"] == 0o640
        assert isinstance(excinfo.value, PermissionError)

    @pytest.mark.parametrize("mode", [0o604, 0o620, 0o601, 0o660])
    def test_any_group_or_other_bit_is_refused(self, store: KeyStore, data_dir: Path, mode: int) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)
        os.chmod(data_dir / "alice.sec", mode)

        with pytest.raises(InsecurePermissionError):
            store.read_secured("alice.sec", KeyFileKind.secret)

    def test_relaxed_public_mode_is_allowed(self, store: KeyStore, data_dir: Path) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)
        os.chmod(data_dir / "alice.pub", 0o666)

        assert store.read_secured("alice.pub", KeyFileKind.public).strip() == NPUB.encode()

    def test_missing_file_is_io_error(self, store: KeyStore) -> None:
        with pytest.raises(KeychainIOError):
            store.read_secured("ghost.sec", KeyFileKind.secret)

    def test_get_key_honours_permission_check(self, store: KeyStore, data_dir: Path) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)
        os.chmod(data_dir / "alice.sec", 0o644)

        with pytest.raises(InsecurePermissionError):
            store.get_key("alice")


class TestGetKey:
    def test_hex_import_round_trip_is_byte_identical(self, store: KeyStore) -> None:
        secret = bytes.fromhex(SECRET_HEX)
        import_identity(store, secret.hex(), "alice")

        assert bytes(store.get_key("alice")) == secret

    def test_unknown_name(self, store: KeyStore) -> None:
        with pytest.raises(NotFoundError):
            store.get_key("nobody")

    def test_corrupt_secret_is_crypto_error(self, store: KeyStore, data_dir: Path) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)
        (data_dir / "alice.sec").write_text("not-hex\n")

        with pytest.raises(CryptoError):
            store.get_key("alice")

    def test_encrypted_round_trip(self, store: KeyStore, data_dir: Path) -> None:
        record = store.save("alice", bytes.fromhex(SECRET_HEX), NPUB, password="hunter2")

        assert record.encrypted is True
        assert store.is_encrypted("alice") is True
        assert SECRET_HEX not in (data_dir / "alice.sec").read_text()
        assert (data_dir / "alice.sec").read_text().startswith("fernet$1000$")
        assert bytes(store.get_key("alice", "hunter2")) == bytes.fromhex(SECRET_HEX)

    def test_encrypted_wrong_password(self, store: KeyStore) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB, password="hunter2")

        with pytest.raises(CryptoError):
            store.get_key("alice", "hunter3")

    def test_encrypted_missing_password(self, store: KeyStore) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB, password="hunter2")

        with pytest.raises(CryptoError):
            store.get_key("alice")

    def test_plain_key_ignores_password(self, store: KeyStore) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)

        assert store.is_encrypted("alice") is False
        assert bytes(store.get_key("alice", "unused")) == bytes.fromhex(SECRET_HEX)


class TestListNames:
    def test_empty_when_directory_missing(self, store: KeyStore) -> None:
        assert store.list_names() == []

    def test_sorted_and_ignores_other_files(self, store: KeyStore, data_dir: Path) -> None:
        for name in ["carol", "alice", "bob"]:
            store.save(name, bytes.fromhex(SECRET_HEX), NPUB)
        (data_dir / ".alice.sec.abc.tmp").write_text("partial")
        (data_dir / "signr.yaml").write_text("default_key: alice\n")

        assert store.list_names() == ["alice", "bob", "carol"]
        assert store.list_names() == store.list_names()

    def test_exists(self, store: KeyStore) -> None:
        store.save("alice", bytes.fromhex(SECRET_HEX), NPUB)
        assert store.exists("alice") is True
        assert store.exists("bob") is False
