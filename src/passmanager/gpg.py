"""
Encryption gateway: the only place that talks to GnuPG.

Plaintext only ever travels over pipes to and from gpg; nothing here
writes decrypted data to disk. Recipients are passed as hidden
recipients (``-R``) so ciphertexts do not name the keys they target.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from .errors import GpgError, PreconditionError
from .models import RecipientSet, StoreConfig

logger = logging.getLogger("passmanager.gpg")

BASE_OPTIONS = ("--quiet", "--yes", "--compress-algo=none", "--no-encrypt-to")


class EncryptionGateway(ABC):
    """Encrypt-to-recipients / decrypt-with-available-keys contract."""

    @abstractmethod
    def encrypt(self, plaintext: bytes, recipients: RecipientSet) -> bytes:
        """Encrypt plaintext for every member of the recipient set."""

    @abstractmethod
    def decrypt(self, ciphertext: bytes) -> bytes:
        """Decrypt with whatever private key is available.

        Raises:
            GpgError: If no available key matches.
        """

    def decrypt_file(self, path: Path) -> bytes:
        try:
            ciphertext = path.read_bytes()
        except OSError as exc:
            raise GpgError(f"failed to read {path}: {exc}") from exc
        return self.decrypt(ciphertext)

    def textconv_command(self) -> Optional[str]:
        """Command git can use to diff encrypted files, if any."""
        return None


def find_gpg(preferred: Optional[str] = None) -> str:
    """Locate the gpg binary.

    Args:
        preferred: Explicit binary name or path from the configuration.

    Returns:
        str: Path to the binary.

    Raises:
        PreconditionError: If neither gpg2 nor gpg is installed.
    """
    candidates = [preferred] if preferred else ["gpg2", "gpg"]
    for name in candidates:
        found = shutil.which(name)
        if found:
            return found
    raise PreconditionError("gpg or gpg2 not found")


class GpgGateway(EncryptionGateway):
    """EncryptionGateway backed by the system gpg binary."""

    def __init__(
        self,
        binary: str,
        extra_options: Sequence[str] = (),
        timeout: Optional[float] = None,
    ):
        self.binary = binary
        self.timeout = timeout
        options = list(extra_options) + list(BASE_OPTIONS)
        if os.environ.get("GPG_AGENT_INFO") or Path(binary).name == "gpg2":
            options += ["--batch", "--use-agent"]
        self.options = options

    @classmethod
    def from_config(cls, config: StoreConfig) -> "GpgGateway":
        return cls(
            find_gpg(config.gpg_binary),
            extra_options=config.gpg_options,
            timeout=config.gpg_timeout,
        )

    def _run(self, args: list[str], data: bytes, action: str) -> bytes:
        cmd = [self.binary, *args]
        try:
            result = subprocess.run(
                cmd,
                input=data,
                capture_output=True,
                check=False,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise GpgError(f"failed to {action}: {exc}") from exc
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise GpgError(f"failed to {action}: {stderr or 'gpg exited with ' + str(result.returncode)}")
        return result.stdout

    def encrypt(self, plaintext: bytes, recipients: RecipientSet) -> bytes:
        args = ["-e", *self.options]
        for recipient in recipients.members:
            args += ["-R", recipient]
        ciphertext = self._run(args, plaintext, "encrypt")
        logger.debug("Encrypted %d bytes for %d recipient(s)", len(plaintext), len(recipients.members))
        return ciphertext

    def decrypt(self, ciphertext: bytes) -> bytes:
        return self._run(["-d", *self.options], ciphertext, "decrypt")

    def textconv_command(self) -> Optional[str]:
        return " ".join([self.binary, "-d", *self.options])
