"""
Atomic artifact writer and the decrypt/modify/re-encrypt pipeline.

Every mutation of an encrypted artifact goes through AtomicWriter: new
ciphertext is written to a registered temp file first and only then put
in place of the target. Two strategies exist:

COPY
    Securely delete the target, then copy the temp file over it. There
    is a window between the delete and the end of the copy where the
    target does not exist; a crash inside it loses the artifact. This is
    the historical behaviour of the store and stays the default.

RENAME
    Stage the temp file in the target's directory, fsync it and
    os.replace() it onto the target. The target is always either the old
    or the new ciphertext.

Neither strategy locks anything. Two processes updating the same
artifact race, and the last replace wins.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Optional

from .errors import FileOperationError
from .gpg import EncryptionGateway
from .models import RecipientSet, ReplaceStrategy
from .tempfiles import SecureTempRegistry, secure_delete, write_private

logger = logging.getLogger("passmanager.atomic")

Transform = Callable[[Optional[bytes]], bytes]


class AtomicWriter:
    """Write-temp-then-replace for store artifacts."""

    def __init__(
        self,
        registry: SecureTempRegistry,
        strategy: ReplaceStrategy = ReplaceStrategy.COPY,
    ):
        self.registry = registry
        self.strategy = ReplaceStrategy(strategy)

    def write(self, target: Path, data: bytes) -> None:
        """Replace ``target`` with ``data``.

        Raises:
            FileOperationError: If writing or replacing fails.
        """
        if self.strategy is ReplaceStrategy.RENAME:
            self._write_rename(target, data)
        else:
            self._write_copy(target, data)
        logger.debug("Wrote %s (%d bytes, %s)", target.name, len(data), self.strategy.value)

    def _write_copy(self, target: Path, data: bytes) -> None:
        with self.registry.temp_path() as tmp:
            write_private(tmp, data)
            secure_delete(target)
            try:
                shutil.copyfile(tmp, target)
            except OSError as exc:
                raise FileOperationError(f"failed to copy new ciphertext to {target}: {exc}") from exc

    def _write_rename(self, target: Path, data: bytes) -> None:
        # os.replace() only works within one filesystem, so stage beside the target
        staged = self.registry.allocate(target.parent)
        try:
            write_private(staged, data, fsync=True)
            os.replace(staged, target)
        except FileOperationError:
            self.registry.release(staged)
            raise
        except OSError as exc:
            self.registry.release(staged)
            raise FileOperationError(f"failed to replace {target}: {exc}") from exc
        self.registry.forget(staged)


class ArtifactPipeline:
    """load -> transform -> atomically persist, for one encrypted artifact.

    The Index and the Secret Record Store both update their artifacts
    exclusively through this class.
    """

    def __init__(self, gateway: EncryptionGateway, writer: AtomicWriter):
        self.gateway = gateway
        self.writer = writer

    def load(self, target: Path) -> Optional[bytes]:
        """Decrypt ``target``, or return None if it does not exist."""
        if not target.exists():
            return None
        return self.gateway.decrypt_file(target)

    def persist(self, target: Path, plaintext: bytes, recipients: RecipientSet) -> None:
        self.writer.write(target, self.gateway.encrypt(plaintext, recipients))

    def update(self, target: Path, transform: Transform, recipients: RecipientSet) -> bytes:
        """Decrypt, transform and re-encrypt ``target`` as one step.

        Args:
            target: Artifact path.
            transform: Receives the current plaintext (None when the
                artifact is absent) and returns the new plaintext.
            recipients: Set to encrypt the result for.

        Returns:
            bytes: The plaintext that was persisted.
        """
        new_plaintext = transform(self.load(target))
        self.persist(target, new_plaintext, recipients)
        return new_plaintext

    def reencrypt(self, target: Path, recipients: RecipientSet) -> None:
        """Re-encrypt an existing artifact unchanged for ``recipients``.

        Raises:
            FileOperationError: If the artifact does not exist.
        """
        if not target.exists():
            raise FileOperationError(f"missing file: {target}")
        self.update(target, lambda plaintext: plaintext, recipients)
