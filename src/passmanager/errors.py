"""
Error taxonomy for the password store.

Core components raise these; only the CLI turns them into a message and
an exit status. Usage errors are left to click.
"""

from __future__ import annotations

from typing import Sequence


class PassManagerError(Exception):
    """Base class for every failure the store reports."""


class PreconditionError(PassManagerError):
    """A required artifact or argument state is missing. Nothing was mutated."""


class ConfigError(PreconditionError):
    """Configuration could not be parsed into a valid StoreConfig."""


class DuplicateEntryError(PreconditionError):
    """Insert would break the one-path-one-ID mapping."""


class RotationUnchangedError(PreconditionError):
    """Rotation requested to the recipient set already in use."""


class CorruptionError(PassManagerError):
    """The index or a record violates a store invariant.

    Never repaired automatically.
    """


class CollaboratorError(PassManagerError):
    """An external tool (gpg, git, editor, clipboard, filesystem) failed."""


class GpgError(CollaboratorError):
    """Encryption or decryption failed."""


class EditorError(CollaboratorError):
    """The editor exited with a non-zero status."""


class VcsError(CollaboratorError):
    """A git command failed."""


class ClipboardError(CollaboratorError):
    """The clipboard could not be read or written."""


class FileOperationError(CollaboratorError):
    """Copying or deleting an artifact failed."""


class PartialRotationError(PassManagerError):
    """A rotation stopped part way through.

    Some artifacts are encrypted for the new recipient set and some for
    the old one. Running the same rotation again finishes the job.
    """

    def __init__(
        self,
        message: str,
        done: Sequence[str] = (),
        remaining: Sequence[str] = (),
    ):
        super().__init__(message)
        self.done = list(done)
        self.remaining = list(remaining)
