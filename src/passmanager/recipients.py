"""
Recipient manager: the one set of keys the whole store is encrypted for.

Rotation protocol:
    1. write ``.rotation`` holding the digest of the target set
    2. persist the new recipients.gpg (encrypted for the new set)
    3. re-encrypt every record, IDs in ascending order
    4. re-encrypt the index
    5. remove ``.rotation``

Each artifact is replaced atomically, but the rotation as a whole is
not. If it stops part way, PartialRotationError lists what is done and
what is left; running the same rotation again resumes it, because the
marker lets the "already encrypted for these recipients" check through.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from . import ROTATION_MARKER
from .atomic import ArtifactPipeline
from .errors import (
    CollaboratorError,
    PartialRotationError,
    PreconditionError,
    RotationUnchangedError,
)
from .index import EncryptedIndex
from .models import InitResult, RecipientSet
from .records import SecretRecordStore

logger = logging.getLogger("passmanager.recipients")


class RecipientManager:
    """Loads, creates and rotates the store's recipient set."""

    def __init__(
        self,
        store_dir: Path,
        recipients_path: Path,
        pipeline: ArtifactPipeline,
        index: EncryptedIndex,
        records: SecretRecordStore,
    ):
        self.store_dir = store_dir
        self.recipients_path = recipients_path
        self.pipeline = pipeline
        self.index = index
        self.records = records

    @property
    def marker_path(self) -> Path:
        return self.store_dir / ROTATION_MARKER

    def exists(self) -> bool:
        return self.recipients_path.exists()

    def load(self) -> RecipientSet:
        """Decrypt the recipient artifact.

        Raises:
            PreconditionError: If the store was never initialized or the
                recipient file holds no recipient.
        """
        plaintext = self.pipeline.load(self.recipients_path)
        if plaintext is None:
            raise PreconditionError("no recipient file present: please run 'passmanager init'")
        try:
            return RecipientSet.from_text(plaintext.decode("utf-8"))
        except ValidationError as exc:
            raise PreconditionError("no recipient defined") from exc

    def pending_rotation(self) -> Optional[str]:
        """Digest of an unfinished rotation's target set, if any."""
        if not self.marker_path.exists():
            return None
        return self.marker_path.read_text(encoding="utf-8").strip() or None

    def init(self, new_set: RecipientSet, force: bool = False) -> InitResult:
        """Create the store, or rotate it to ``new_set``.

        Args:
            new_set: Recipients to encrypt the store for.
            force: Required to rotate an existing store.

        Returns:
            InitResult: What happened.

        Raises:
            PreconditionError: Store exists and ``force`` is not set.
            RotationUnchangedError: Store already uses ``new_set``.
            PartialRotationError: Re-encryption stopped part way.
        """
        if not self.exists() and self.pending_rotation() is None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self.pipeline.persist(self.recipients_path, new_set.to_text().encode("utf-8"), new_set)
            logger.info("Created store for %d recipient(s)", len(new_set.members))
            return InitResult(created=True, recipients=new_set)

        if not force:
            raise PreconditionError("password store already exists: use -f to re-encrypt with new keys")

        pending = self.pending_rotation()
        resumed = pending == new_set.digest
        if not resumed and self.load().digest == new_set.digest:
            raise RotationUnchangedError("password store is already encrypted for these recipients")

        targets = self.rotation_targets()
        self.marker_path.write_text(new_set.digest + "\n", encoding="utf-8")
        try:
            self.pipeline.persist(self.recipients_path, new_set.to_text().encode("utf-8"), new_set)
        except CollaboratorError as exc:
            raise PartialRotationError(
                f"failed to write new recipient file: {exc}",
                remaining=[self.recipients_path.name] + [t.name for t in targets],
            ) from exc
        reencrypted = [self.recipients_path.name] + self.reencrypt_all(new_set, targets)
        os.unlink(self.marker_path)
        logger.info("Rotated store to %d recipient(s), %d artifact(s)", len(new_set.members), len(reencrypted))
        return InitResult(created=False, recipients=new_set, reencrypted=reencrypted, resumed=resumed)

    def rotation_targets(self) -> list[Path]:
        """Every record referenced by the index, sorted by ID, then the index.

        Raises:
            CorruptionError: If a referenced record is missing. Checked
                before anything is rewritten.
        """
        targets = [self.records.require(record_id) for record_id in self.index.ids()]
        if self.index.exists():
            targets.append(self.index.index_path)
        return targets

    def reencrypt_all(self, recipients: RecipientSet, targets: Optional[list[Path]] = None) -> list[str]:
        """Re-encrypt records and then the index for ``recipients``.

        Args:
            recipients: New recipient set.
            targets: Artifacts to rewrite. Defaults to rotation_targets().

        Returns:
            list[str]: Artifact names, in the order they were rewritten.
        """
        if targets is None:
            targets = self.rotation_targets()

        done: list[str] = []
        for position, target in enumerate(targets):
            try:
                self.pipeline.reencrypt(target, recipients)
            except CollaboratorError as exc:
                remaining = [t.name for t in targets[position:]]
                raise PartialRotationError(
                    f"failed to re-encrypt {target.name}: {exc}; "
                    f"{len(done)} artifact(s) rotated, {len(remaining)} left. "
                    "Fix the problem and run the same init -f again to finish.",
                    done=done,
                    remaining=remaining,
                ) from exc
            done.append(target.name)
            logger.debug("Re-encrypted %s", target.name)
        return done
