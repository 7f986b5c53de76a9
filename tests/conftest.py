"""Shared test fixtures for passmanager."""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Callable, Iterable, Optional
from unittest.mock import MagicMock

import pytest

from passmanager.clipboard import ClipboardHandoff
from passmanager.errors import GpgError
from passmanager.gpg import EncryptionGateway
from passmanager.models import RecipientSet, ReplaceStrategy, StoreConfig, canonical_recipient
from passmanager.store import PasswordStore
from passmanager.tempfiles import SecureTempRegistry
from passmanager.vcs import GitAudit

ALICE = "alice@example.com"
BOB = "bob@example.com"
MAGIC = b"FAKEGPG\n"


class FakeGateway(EncryptionGateway):
    """Reversible stand-in for gpg.

    Ciphertext is a header naming the recipient set followed by the
    base64 plaintext. Decryption only works when one of ``keys`` is a
    recipient, mimicking a missing private key.
    """

    def __init__(self, keys: Iterable[str] = (ALICE, BOB)):
        self.keys = {canonical_recipient(k) for k in keys}
        self.encrypt_calls = 0
        self.fail_on_call: Optional[int] = None

    def encrypt(self, plaintext: bytes, recipients: RecipientSet) -> bytes:
        self.encrypt_calls += 1
        if self.fail_on_call is not None and self.encrypt_calls >= self.fail_on_call:
            raise GpgError("failed to encrypt: simulated failure")
        header = ",".join(recipients.members).encode("utf-8")
        return MAGIC + header + b"\n" + base64.b64encode(plaintext)

    def decrypt(self, ciphertext: bytes) -> bytes:
        if not ciphertext.startswith(MAGIC):
            raise GpgError("failed to decrypt: not a fake ciphertext")
        header, _, body = ciphertext[len(MAGIC):].partition(b"\n")
        if not set(header.decode("utf-8").split(",")) & self.keys:
            raise GpgError("failed to decrypt: no secret key")
        return base64.b64decode(body)

    @staticmethod
    def recipients_of(path: Path) -> set[str]:
        header = path.read_bytes()[len(MAGIC):].partition(b"\n")[0]
        return set(header.decode("utf-8").split(","))


class FakeEditor:
    """Editor stand-in: rewrites the file with ``transform(old_text)``."""

    def __init__(self, transform: Optional[Callable[[str], str]] = None):
        self.transform = transform or (lambda text: text)
        self.seen: list[str] = []
        self.paths: list[Path] = []

    def __call__(self, path: Path) -> None:
        old = path.read_text(encoding="utf-8")
        self.seen.append(old)
        self.paths.append(path)
        path.write_text(self.transform(old), encoding="utf-8")


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Stand-in for /dev/shm."""
    path = tmp_path / "shm"
    path.mkdir()
    return path


@pytest.fixture(params=[ReplaceStrategy.COPY, ReplaceStrategy.RENAME], ids=["copy", "rename"])
def strategy(request) -> ReplaceStrategy:
    return request.param


@pytest.fixture
def config(tmp_path: Path, tmp_dir: Path) -> StoreConfig:
    return StoreConfig(
        store_dir=tmp_path / "store",
        use_git=False,
        tmp_dir=tmp_dir,
        editor=("true",),
        pass_length=20,
    )


@pytest.fixture
def registry(tmp_dir: Path):
    with SecureTempRegistry(tmp_dir, install_signal_handlers=False) as reg:
        yield reg


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor(lambda text: text + "login: alice\n")


@pytest.fixture
def store(config, registry, gateway, editor) -> PasswordStore:
    """A PasswordStore wired to fakes, not yet initialized."""
    return PasswordStore(
        config,
        registry,
        gateway=gateway,
        editor=editor,
        vcs=GitAudit(config.store_dir, enabled=False),
        clipboard=MagicMock(spec=ClipboardHandoff),
    )


@pytest.fixture
def ready_store(store) -> PasswordStore:
    """A store initialized for alice."""
    store.init([ALICE])
    return store
