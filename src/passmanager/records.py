"""
Secret record store: one encrypted artifact per secret.

Records are named ``<id>.gpg`` where the ID is a random token, so the
filesystem never reveals which secret is which. Line 1 of a record is
the secret itself; any following lines are free-form metadata.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Callable, Optional

from . import RECORD_SUFFIX
from .atomic import ArtifactPipeline
from .errors import CorruptionError, FileOperationError, PreconditionError
from .ids import rand_id
from .models import CharsetLevel, RecipientSet
from .tempfiles import SecureTempRegistry, secure_delete, write_private

logger = logging.getLogger("passmanager.records")

EditorFn = Callable[[Path], None]


def replace_first_line(plaintext: bytes, first_line: str) -> bytes:
    """Swap line 1 of a record, keeping every other line byte for byte."""
    _, sep, rest = plaintext.partition(b"\n")
    return first_line.encode("utf-8") + b"\n" + (rest if sep else b"")


def has_content(plaintext: bytes) -> bool:
    return any(line.strip() for line in plaintext.split(b"\n"))


class SecretRecordStore:
    """Create, read, rewrite and delete encrypted secret records."""

    def __init__(
        self,
        store_dir: Path,
        pipeline: ArtifactPipeline,
        registry: SecureTempRegistry,
        id_length: int = 16,
    ):
        self.store_dir = store_dir
        self.pipeline = pipeline
        self.registry = registry
        self.id_length = id_length

    def path_for(self, record_id: str) -> Path:
        return self.store_dir / f"{record_id}{RECORD_SUFFIX}"

    def exists(self, record_id: str) -> bool:
        return self.path_for(record_id).exists()

    def allocate_id(self) -> str:
        """Draw a record ID whose artifact does not exist yet."""
        record_id = rand_id(self.id_length, CharsetLevel.ALNUM)
        while self.exists(record_id):
            record_id = rand_id(self.id_length, CharsetLevel.ALNUM)
        return record_id

    def require(self, record_id: str) -> Path:
        path = self.path_for(record_id)
        if not path.exists():
            raise CorruptionError(f"corrupted index: {record_id} in index but GPG file not present")
        return path

    def read_bytes(self, record_id: str) -> bytes:
        """Decrypt a record.

        Raises:
            CorruptionError: If the index references a missing artifact.
        """
        return self.pipeline.gateway.decrypt_file(self.require(record_id))

    def read(self, record_id: str) -> str:
        """Decrypt a record as text.

        Bytes that are not valid UTF-8 survive as surrogate escapes, so
        ``encode("utf-8", "surrogateescape")`` gives back the stored bytes.
        """
        return self.read_bytes(record_id).decode("utf-8", "surrogateescape")

    def read_line(self, record_id: str, line_number: int) -> str:
        """Return line ``line_number`` (1-based) of a record.

        Raises:
            PreconditionError: If the line is missing or empty.
        """
        if line_number < 1:
            raise PreconditionError(f"line number must be positive, got {line_number}")
        lines = self.read(record_id).split("\n")
        value = lines[line_number - 1] if line_number <= len(lines) else ""
        if not value:
            raise PreconditionError(f"nothing at line {line_number}")
        return value

    def write(self, record_id: str, payload: str | bytes, recipients: RecipientSet) -> None:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        self.pipeline.persist(self.path_for(record_id), payload, recipients)

    def create(self, payload: str | bytes, recipients: RecipientSet) -> str:
        """Encrypt ``payload`` into a freshly allocated record.

        Returns:
            str: The new record ID.
        """
        record_id = self.allocate_id()
        self.write(record_id, payload, recipients)
        logger.info("Created record %s", record_id)
        return record_id

    def replace_all(self, record_id: str, payload: str, recipients: RecipientSet) -> None:
        """Overwrite a record entirely; metadata lines are discarded."""
        self.require(record_id)
        self.write(record_id, payload, recipients)
        logger.info("Replaced record %s", record_id)

    def replace_first_line(self, record_id: str, first_line: str, recipients: RecipientSet) -> None:
        """Swap the secret on line 1, keeping the metadata lines."""
        path = self.require(record_id)
        self.pipeline.update(path, lambda old: replace_first_line(old or b"", first_line), recipients)
        logger.info("Replaced first line of record %s", record_id)

    def duplicate(self, src_id: str, dst_id: str, recipients: RecipientSet) -> None:
        """Re-encrypt the content of ``src_id`` into ``dst_id``."""
        self.write(dst_id, self.read_bytes(src_id), recipients)
        logger.info("Duplicated record %s into %s", src_id, dst_id)

    def delete(self, record_id: str) -> None:
        secure_delete(self.path_for(record_id))
        logger.info("Deleted record %s", record_id)

    def edit(
        self,
        record_id: Optional[str],
        recipients: RecipientSet,
        editor: EditorFn,
        initial: str = "",
    ) -> tuple[str, bool]:
        """Let the user edit a record in a wiped-on-exit scratch file.

        Args:
            record_id: Existing record, or None to create a new one.
            recipients: Set to encrypt the result for.
            editor: Callable that edits a file in place.
            initial: Pre-filled content for a new record.

        Returns:
            tuple[str, bool]: Record ID and whether it was newly created.

        Raises:
            PreconditionError: If an existing record was left unchanged, or
                the result has no non-blank line.
        """
        created = record_id is None
        original = initial.encode("utf-8") if created else self.read_bytes(record_id)

        with self.registry.temp_path() as scratch:
            write_private(scratch, original)
            editor(scratch)
            try:
                edited = scratch.read_bytes()
            except OSError as exc:
                raise FileOperationError(f"edited file disappeared: {exc}") from exc

        if not created and hashlib.sha256(edited).digest() == hashlib.sha256(original).digest():
            raise PreconditionError("password file was not modified")
        if not has_content(edited):
            raise PreconditionError("edited password file was empty")

        if created:
            record_id = self.allocate_id()
        self.write(record_id, edited, recipients)
        logger.info("%s record %s", "Created" if created else "Edited", record_id)
        return record_id, created
