from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from signr.config import SignrSettings
from signr.core.identity import generate_identity
from signr.core.keystore import KeyStore
from signr.core.signer import Signer
from signr.models.keys import KeyPairRecord

from tests.fakes import FixedNonceSource

# Production default is 600_000 PBKDF2 iterations.
_TEST_KDF_ITERATIONS = 1_000


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    filters = list(root.filters)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.filters[:] = filters
    root.setLevel(level)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "keychain"


@pytest.fixture
def settings(data_dir: Path) -> SignrSettings:
    return SignrSettings(data_dir=data_dir, kdf_iterations=_TEST_KDF_ITERATIONS)


@pytest.fixture
def store(settings: SignrSettings) -> KeyStore:
    return KeyStore.from_settings(settings)


@pytest.fixture
def nonce_source() -> FixedNonceSource:
    return FixedNonceSource()


@pytest.fixture
def signer(settings: SignrSettings, store: KeyStore, nonce_source: FixedNonceSource) -> Signer:
    return Signer(settings, store=store, nonce_source=nonce_source)


@pytest.fixture
def alice(store: KeyStore) -> KeyPairRecord:
    return generate_identity(store, "alice")


@pytest.fixture
def empty_file(tmp_path: Path) -> Path:
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    return path


@pytest.fixture
def document(tmp_path: Path) -> Path:
    path = tmp_path / "document.txt"
    path.write_text("the quick brown fox\n", encoding="utf-8")
    return path
