"""Allow ``python -m passmanager``."""

from .cli import main

main()
