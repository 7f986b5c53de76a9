"""
Git audit trail for the store directory.

Optional: when git is disabled every commit is a no-op and the store
works exactly the same. Commit messages name record IDs only, never
paths, so the history leaks no more than the directory listing.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from .errors import PreconditionError, VcsError

logger = logging.getLogger("passmanager.vcs")


class GitAudit:
    """Thin wrapper running git inside the store directory."""

    def __init__(self, store_dir: Path, enabled: bool, textconv: Optional[str] = None):
        self.store_dir = store_dir
        self.enabled = enabled
        self.textconv = textconv

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=False, cwd=str(self.store_dir),
            )
        except OSError as exc:
            raise VcsError(f"git could not be started: {exc}") from exc
        if result.returncode != 0:
            logger.error("Git command failed: %s -> %s", " ".join(cmd), result.stderr.strip())
            raise VcsError(f"git {args[0]} failed: {result.stderr.strip()}")
        return result

    def init_repo(self) -> None:
        """Create the repository with a gpg diff driver, then commit."""
        if not self.enabled:
            return
        if shutil.which("git") is None:
            raise VcsError("git not found")
        self._git("init", "-q")
        (self.store_dir / ".gitattributes").write_text("*.gpg diff=gpg\n", encoding="utf-8")
        self._git("config", "--local", "user.name", "user")
        self._git("config", "--local", "user.email", "user@pc")
        self._git("config", "--local", "diff.gpg.binary", "true")
        if self.textconv:
            self._git("config", "--local", "diff.gpg.textconv", self.textconv)
        self.commit("initialized new password store")

    def commit(self, message: str) -> None:
        """Stage everything and record one audit commit."""
        if not self.enabled:
            return
        self._git("add", ".")
        self._git("commit", "-q", "-m", message)
        logger.info("Committed: %s", message)

    def run(self, args: Sequence[str]) -> int:
        """Pass a git command through, attached to the terminal.

        Returns:
            int: git's exit status.
        """
        if not self.enabled:
            raise PreconditionError("git not enabled")
        if not self.store_dir.is_dir():
            raise PreconditionError(f"{self.store_dir} does not exist")
        try:
            return subprocess.run(["git", *args], cwd=str(self.store_dir), check=False).returncode
        except OSError as exc:
            raise VcsError(f"git could not be started: {exc}") from exc
