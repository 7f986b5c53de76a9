"""External editor collaborator."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from .errors import EditorError

logger = logging.getLogger("passmanager.editor")


class Editor:
    """Runs the configured editor on a file and waits for it to exit."""

    def __init__(self, command: Sequence[str]):
        self.command = list(command)

    def __call__(self, path: Path) -> None:
        """Edit ``path`` in place.

        Raises:
            EditorError: If the editor cannot start or exits non-zero.
        """
        cmd = [*self.command, str(path)]
        logger.debug("Launching editor %s", self.command[0])
        try:
            result = subprocess.run(cmd, check=False)
        except OSError as exc:
            raise EditorError(f"{self.command[0]} could not be started: {exc}") from exc
        if result.returncode != 0:
            raise EditorError(f"{self.command[0]} returned an error: {result.returncode}")
