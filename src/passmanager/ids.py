"""Random tokens: record IDs, temp file names and generated passwords."""

from __future__ import annotations

import secrets
import string

from .models import CharsetLevel

SYMBOLS = "`^~<=>|_-,;:!?/.\"()[]{}@$*\\&#%+'"

_ALPHABETS = {
    CharsetLevel.ALNUM: string.ascii_lowercase + string.digits,
    CharsetLevel.CAPITALS: string.ascii_lowercase + string.digits + string.ascii_uppercase,
    CharsetLevel.SYMBOLS: string.ascii_lowercase + string.digits + string.ascii_uppercase + SYMBOLS,
}


def alphabet(level: CharsetLevel) -> str:
    return _ALPHABETS[CharsetLevel(level)]


def rand_id(length: int, level: CharsetLevel = CharsetLevel.ALNUM) -> str:
    """Draw a random token from the CSPRNG.

    Args:
        length: Number of characters.
        level: ALNUM for internal names, CAPITALS or SYMBOLS for
            human-facing passwords.

    Returns:
        str: The token.
    """
    if length < 1:
        raise ValueError(f"token length must be positive, got {length}")
    chars = alphabet(level)
    return "".join(secrets.choice(chars) for _ in range(length))

