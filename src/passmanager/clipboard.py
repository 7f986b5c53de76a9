"""
Clipboard handoff: put a secret on the clipboard, restore it later.

The CLI process exits right after copying, so the restore is handed to a
detached ``python -m passmanager.clipboard`` process started in its own
session. That process gets the previous clipboard content on stdin and
only the SHA-256 of the secret on its command line. After the delay, or
at once when a newer copy supersedes it with SIGTERM, it puts the
previous content back unless something else was copied meanwhile.
"""

from __future__ import annotations

import hashlib
import logging
import os
import signal
import subprocess
import sys
import tempfile
import time
from pathlib import Path
from typing import Optional

import click
import pyperclip

from .errors import ClipboardError

logger = logging.getLogger("passmanager.clipboard")

PID_FILE_NAME = "passmanager-clip.pid"
SETTLE_DELAY = 0.5
KLIPPER_CLEAR = (
    "qdbus",
    "org.kde.klipper",
    "/klipper",
    "org.kde.klipper.klipper.clearClipboardHistory",
)


def secret_digest(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def default_runtime_dir() -> Path:
    runtime = os.environ.get("XDG_RUNTIME_DIR")
    return Path(runtime) if runtime else Path(tempfile.gettempdir())


def is_restore_task(pid: int, proc_root: Path = Path("/proc")) -> bool:
    """Whether ``pid`` still runs the restore task and not some reused PID.

    Without a procfs the PID cannot be checked and is trusted.
    """
    if not proc_root.is_dir():
        return True
    try:
        cmdline = (proc_root / str(pid) / "cmdline").read_bytes()
    except OSError:
        return False
    return b"passmanager.clipboard" in cmdline.split(b"\0")


class ClipboardHandoff:
    """Copies secrets and schedules their removal from the clipboard."""

    def __init__(self, clip_time: int, runtime_dir: Optional[Path] = None):
        self.clip_time = clip_time
        self.runtime_dir = runtime_dir or default_runtime_dir()

    @property
    def pid_path(self) -> Path:
        return self.runtime_dir / PID_FILE_NAME

    def _supersede(self) -> None:
        """Make a pending restore task restore right now."""
        try:
            pid = int(self.pid_path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return
        if not is_restore_task(pid):
            logger.debug("Stale clipboard pid file for %d", pid)
            return
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            logger.debug("Stale clipboard pid file for %d", pid)
            return
        except PermissionError:
            logger.warning("Cannot signal clipboard restore task %d", pid)
            return
        time.sleep(SETTLE_DELAY)

    def copy(self, secret: str, label: str) -> subprocess.Popen:
        """Place ``secret`` on the clipboard and spawn the restore task.

        Args:
            secret: Value to copy.
            label: Human-readable name, only used in log output.

        Returns:
            subprocess.Popen: The detached restore process.

        Raises:
            ClipboardError: If the clipboard or the restore task fails.
        """
        self._supersede()
        try:
            before = pyperclip.paste() or ""
            pyperclip.copy(secret)
        except pyperclip.PyperclipException as exc:
            raise ClipboardError(f"failed to copy data to the clipboard: {exc}") from exc

        cmd = [
            sys.executable, "-m", "passmanager.clipboard",
            "--delay", str(self.clip_time),
            "--digest", secret_digest(secret),
            "--pid-file", str(self.pid_path),
        ]
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
            proc.stdin.write(before.encode("utf-8"))
            proc.stdin.close()
            self.pid_path.write_text(f"{proc.pid}\n", encoding="utf-8")
        except OSError as exc:
            raise ClipboardError(f"failed to schedule clipboard restore: {exc}") from exc

        logger.info("Copied %s to clipboard, restore in %ds (pid %d)", label, self.clip_time, proc.pid)
        return proc


def clear_klipper_history() -> None:
    """Wipe KDE Klipper's history; clipboard managers store it in plaintext."""
    try:
        subprocess.run(list(KLIPPER_CLEAR), capture_output=True, check=False, timeout=5)
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("Klipper history not cleared: %s", exc)


def restore_clipboard(before: str, digest: str) -> str:
    """Put ``before`` back, unless the clipboard no longer holds the secret.

    Returns:
        str: The content left on the clipboard.
    """
    try:
        now = pyperclip.paste() or ""
    except pyperclip.PyperclipException as exc:
        raise ClipboardError(f"failed to read the clipboard: {exc}") from exc
    if secret_digest(now) != digest:
        # something newer was copied meanwhile
        before = now
    clear_klipper_history()
    try:
        pyperclip.copy(before)
    except pyperclip.PyperclipException as exc:
        raise ClipboardError(f"failed to restore the clipboard: {exc}") from exc
    return before


class _Superseded(Exception):
    pass


def _wake(signum, frame) -> None:
    raise _Superseded()


def _remove_pid_file(pid_file: Path) -> None:
    try:
        if pid_file.read_text(encoding="utf-8").strip() == str(os.getpid()):
            pid_file.unlink()
    except OSError as exc:
        logger.debug("Pid file not removed: %s", exc)


@click.command()
@click.option("--delay", type=click.IntRange(min=0), required=True, help="Seconds before restoring.")
@click.option("--digest", required=True, help="SHA-256 of the copied secret.")
@click.option("--pid-file", type=click.Path(path_type=Path), default=None, help="Pid file to clean up.")
def main(delay: int, digest: str, pid_file: Optional[Path]):
    """Restore the clipboard after a delay (content read from stdin)."""
    before = sys.stdin.read()
    signal.signal(signal.SIGTERM, _wake)
    try:
        time.sleep(delay)
    except _Superseded:
        logger.debug("Superseded, restoring clipboard early")
    signal.signal(signal.SIGTERM, signal.SIG_DFL)
    try:
        restore_clipboard(before, digest)
    finally:
        if pid_file is not None:
            _remove_pid_file(pid_file)


if __name__ == "__main__":
    main()
