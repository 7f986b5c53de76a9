"""
Secure temp registry: every scratch file the store creates, and its cleanup.

Ciphertext staging files and the plaintext buffer handed to the editor
all come from here. The registry is a context manager owned by one CLI
invocation: leaving the block, an exception, or SIGINT/SIGTERM/SIGHUP
all wipe and unlink whatever is still registered.

Only temporary paths are ever registered. Final artifacts are deleted
through secure_delete() directly by their owners.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .errors import FileOperationError
from .ids import rand_id

logger = logging.getLogger("passmanager.tempfiles")

SHM_DIR = Path("/dev/shm")
TEMP_NAME_LENGTH = 16
HANDLED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGHUP") if hasattr(signal, name)
)


def pick_tmp_dir(preferred: Optional[Path] = None) -> Path:
    """Choose where temp files go, preferring memory-backed storage."""
    if preferred is not None:
        return preferred
    if SHM_DIR.is_dir() and os.access(SHM_DIR, os.W_OK):
        return SHM_DIR
    return Path(tempfile.gettempdir())


def secure_delete(path: Path) -> None:
    """Overwrite and unlink a file.

    Uses ``shred -fu`` when available; otherwise falls back to a plain
    unlink. A missing file is not an error.

    Raises:
        FileOperationError: If the file still exists afterwards.
    """
    if not path.exists():
        return

    shred = shutil.which("shred")
    if shred:
        result = subprocess.run(
            [shred, "-fu", str(path)],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            logger.warning("shred failed on %s: %s", path.name, result.stderr.strip())

    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        raise FileOperationError(f"failed to delete {path}: {exc}") from exc


class SecureTempRegistry:
    """Owns the temporary files of one process.

    Usage::

        with SecureTempRegistry(tmp_dir) as registry:
            with registry.temp_path() as tmp:
                ...  # tmp is wiped when the inner block ends
            scratch = registry.allocate()  # wiped when the outer block ends
    """

    def __init__(self, tmp_dir: Optional[Path] = None, install_signal_handlers: bool = True):
        self.tmp_dir = pick_tmp_dir(tmp_dir)
        self._paths: list[Path] = []
        self._install = install_signal_handlers
        self._previous_handlers: dict[int, object] = {}

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def allocate(self, directory: Optional[Path] = None) -> Path:
        """Reserve a fresh, non-existent temp path and register it.

        Args:
            directory: Where to place it. Defaults to the registry temp dir.

        Returns:
            Path: Registered path (not yet created on disk).
        """
        base = directory or self.tmp_dir
        path = base / rand_id(TEMP_NAME_LENGTH)
        while path.exists() or path in self._paths:
            path = base / rand_id(TEMP_NAME_LENGTH)
        self._paths.append(path)
        return path

    def release(self, path: Path) -> None:
        """Wipe one registered path and forget it."""
        try:
            secure_delete(path)
        finally:
            if path in self._paths:
                self._paths.remove(path)

    def forget(self, path: Path) -> None:
        """Stop tracking a path that no longer exists as a temp file.

        Used once a staged file has been renamed onto its final target.
        """
        if path in self._paths:
            self._paths.remove(path)

    @contextmanager
    def temp_path(self, directory: Optional[Path] = None) -> Iterator[Path]:
        """Scoped temp path, released as soon as the block exits."""
        path = self.allocate(directory)
        try:
            yield path
        finally:
            self.release(path)

    def drain(self) -> None:
        """Wipe and unlink every registered path.

        Keeps going after a failure so one stuck file never leaves the
        others behind.
        """
        while self._paths:
            path = self._paths.pop()
            try:
                secure_delete(path)
            except FileOperationError as exc:
                logger.error("Could not remove temp file: %s", exc)

    def _handle_signal(self, signum: int, frame) -> None:
        logger.debug("Received signal %d, draining %d temp file(s)", signum, len(self._paths))
        self.drain()
        raise SystemExit(128 + signum)

    def __enter__(self) -> "SecureTempRegistry":
        if self._install:
            for signum in HANDLED_SIGNALS:
                try:
                    self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
                except ValueError:
                    # not the main thread
                    logger.debug("Cannot install handler for signal %d", signum)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.drain()
        finally:
            for signum, handler in self._previous_handlers.items():
                if handler is not None:
                    signal.signal(signum, handler)
            self._previous_handlers.clear()


def write_private(path: Path, data: bytes, fsync: bool = False) -> None:
    """Create ``path`` readable by the owner only and write ``data``.

    Raises:
        FileOperationError: If the file exists already or cannot be written.
    """
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            if fsync:
                fh.flush()
                os.fsync(fh.fileno())
    except OSError as exc:
        raise FileOperationError(f"failed to write temp file {path}: {exc}") from exc
