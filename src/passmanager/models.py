"""
Pydantic models for the store configuration and its persisted state.

StoreConfig is built once per invocation and shared by every component.
It is frozen: nothing downstream may tweak a setting after startup.
"""

from __future__ import annotations

import hashlib
import re
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import INDEX_FILE, RECIPIENTS_FILE

_HEX_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{8,40}$")


class ReplaceStrategy(str, Enum):
    """How the atomic writer puts a new artifact in place."""

    # Securely delete the target, then copy the temp file over it.
    COPY = "copy"
    # Stage next to the target and os.replace() it.
    RENAME = "rename"


class CharsetLevel(int, Enum):
    """Alphabet used when generating random tokens."""

    ALNUM = 0
    CAPITALS = 1
    SYMBOLS = 2


class StoreConfig(BaseModel):
    """Immutable runtime configuration for one invocation."""

    model_config = ConfigDict(frozen=True)

    store_dir: Path = Path("~/.local/share/passmanager")
    umask: int = 0o077
    gpg_binary: Optional[str] = None
    gpg_options: tuple[str, ...] = ()
    gpg_timeout: Optional[float] = None
    use_git: Optional[bool] = None
    editor: tuple[str, ...] = ("vi",)
    pass_length: int = Field(default=25, ge=1)
    clip_time: int = Field(default=15, ge=0)
    replace_strategy: ReplaceStrategy = ReplaceStrategy.COPY
    tmp_dir: Optional[Path] = None
    id_length: int = Field(default=16, ge=8)

    @field_validator("store_dir", "tmp_dir")
    @classmethod
    def _expand(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value is not None else None

    @field_validator("editor")
    @classmethod
    def _editor_not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("editor command cannot be empty")
        return value

    @property
    def recipients_path(self) -> Path:
        return self.store_dir / RECIPIENTS_FILE

    @property
    def index_path(self) -> Path:
        return self.store_dir / INDEX_FILE


def canonical_recipient(recipient: str) -> str:
    """Normalize a recipient so that spelling variants compare equal.

    Hex key IDs and fingerprints are upper-cased without ``0x``; e-mail
    identifiers are lower-cased; anything else is only stripped.
    """
    value = recipient.strip()
    if _HEX_KEY_RE.match(value):
        if value[:2].lower() == "0x":
            value = value[2:]
        return value.upper()
    if "@" in value:
        return value.lower()
    return value


class RecipientSet(BaseModel):
    """The full group of principals every artifact is encrypted for.

    Members are canonical, sorted and unique, so two sets built from the
    same principals in a different order (or different casing) are equal
    and share a digest.
    """

    model_config = ConfigDict(frozen=True)

    members: tuple[str, ...]

    @field_validator("members", mode="before")
    @classmethod
    def _canonicalize(cls, value) -> tuple[str, ...]:
        canonical = {canonical_recipient(str(r)) for r in value}
        canonical.discard("")
        if not canonical:
            raise ValueError("a recipient set needs at least one recipient")
        return tuple(sorted(canonical))

    @classmethod
    def of(cls, *recipients: str) -> "RecipientSet":
        return cls(members=recipients)

    @classmethod
    def from_text(cls, text: str) -> "RecipientSet":
        """Parse the decrypted recipient file (one recipient per line)."""
        return cls(members=[line for line in text.splitlines() if line.strip()])

    def to_text(self) -> str:
        return "".join(f"{r}\n" for r in self.members)

    @property
    def digest(self) -> str:
        return hashlib.sha256(self.to_text().encode("utf-8")).hexdigest()


class IndexEntry(NamedTuple):
    """One ``path<TAB>id`` line of the decrypted index."""

    path: str
    id: str


class InitResult(BaseModel):
    """Outcome of ``RecipientManager.init``."""

    created: bool
    recipients: RecipientSet
    reencrypted: list[str] = Field(default_factory=list)
    resumed: bool = False
