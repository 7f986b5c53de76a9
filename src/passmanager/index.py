"""
Encrypted index: the confidential path <-> ID mapping.

Decrypted, the index is one ``path<TAB>id`` line per secret. The mapping
must stay bijective: a path that appears twice, or an ID referenced by
two paths, is corruption and is reported, never repaired.

Every change decrypts the whole index, adds or removes one entry and
re-encrypts the whole index through the ArtifactPipeline. Lookups are
exact string comparisons, so characters such as ``.`` or ``*`` in a path
are always literal.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from .atomic import ArtifactPipeline
from .errors import CorruptionError, DuplicateEntryError, PreconditionError
from .models import IndexEntry, RecipientSet

logger = logging.getLogger("passmanager.index")


def validate_path(path: str) -> str:
    """Reject paths that cannot be stored in the line format.

    Raises:
        PreconditionError: If the path is empty or holds a tab or newline.
    """
    if not path or not path.strip():
        raise PreconditionError("password path cannot be empty")
    if any(c in path for c in "\t\n\r"):
        raise PreconditionError("password path cannot contain tabs or newlines")
    return path


def parse_index(plaintext: bytes) -> list[IndexEntry]:
    """Parse decrypted index bytes into entries.

    Raises:
        CorruptionError: If a line is not ``path<TAB>id``.
    """
    try:
        text = plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CorruptionError(f"corrupt index: not valid UTF-8 ({exc.reason})") from exc
    entries = []
    for lineno, line in enumerate(text.split("\n"), start=1):
        if not line:
            continue
        path, sep, record_id = line.rpartition("\t")
        if not sep or not path or not record_id:
            raise CorruptionError(f"corrupt index: malformed entry on line {lineno}")
        entries.append(IndexEntry(path, record_id))
    return entries


def format_index(entries: Iterable[IndexEntry]) -> bytes:
    return "".join(f"{e.path}\t{e.id}\n" for e in entries).encode("utf-8")


class EncryptedIndex:
    """The path <-> ID mapping stored as one encrypted artifact."""

    def __init__(self, index_path: Path, pipeline: ArtifactPipeline):
        self.index_path = index_path
        self.pipeline = pipeline

    def exists(self) -> bool:
        return self.index_path.exists()

    def entries(self) -> list[IndexEntry]:
        """All entries in stored order; empty when there is no index."""
        plaintext = self.pipeline.load(self.index_path)
        if plaintext is None:
            return []
        return parse_index(plaintext)

    def lookup_by_path(self, path: str) -> Optional[str]:
        """Return the ID stored for ``path``, or None.

        Raises:
            CorruptionError: If the path is present more than once.
        """
        matches = [e.id for e in self.entries() if e.path == path]
        if len(matches) > 1:
            raise CorruptionError(f"corrupt index: path {path} present more than once")
        return matches[0] if matches else None

    def lookup_by_id(self, record_id: str) -> Optional[str]:
        """Return the path stored for ``record_id``, or None.

        Raises:
            CorruptionError: If the ID is present more than once.
        """
        matches = [e.path for e in self.entries() if e.id == record_id]
        if len(matches) > 1:
            raise CorruptionError(f"corrupt index: ID {record_id} present more than once")
        return matches[0] if matches else None

    def paths(self) -> list[str]:
        return sorted(e.path for e in self.entries())

    def ids(self) -> list[str]:
        return sorted(e.id for e in self.entries())

    def find(self, terms: Iterable[str]) -> list[str]:
        """Sorted paths containing any of ``terms`` as a literal substring."""
        terms = [t for t in terms if t]
        return sorted(e.path for e in self.entries() if any(t in e.path for t in terms))

    def insert(self, path: str, record_id: str, recipients: RecipientSet) -> None:
        """Add ``path -> record_id``, creating the index if needed.

        Raises:
            DuplicateEntryError: If the path or the ID is already present.
        """
        validate_path(path)

        def add(plaintext: Optional[bytes]) -> bytes:
            entries = parse_index(plaintext) if plaintext is not None else []
            if any(e.path == path or e.id == record_id for e in entries):
                raise DuplicateEntryError("password with this path or id already exists")
            entries.append(IndexEntry(path, record_id))
            return format_index(entries)

        self.pipeline.update(self.index_path, add, recipients)
        logger.info("Added %s to index", record_id)

    def remove(self, record_id: str, recipients: RecipientSet) -> None:
        """Drop every entry pointing at ``record_id``.

        Raises:
            PreconditionError: If there is no index at all.
        """
        if not self.exists():
            raise PreconditionError("cannot remove from nonexistent index")

        def drop(plaintext: Optional[bytes]) -> bytes:
            entries = parse_index(plaintext or b"")
            return format_index(e for e in entries if e.id != record_id)

        self.pipeline.update(self.index_path, drop, recipients)
        logger.info("Removed %s from index", record_id)
