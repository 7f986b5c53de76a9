"""
passmanager: a GPG password store with a confidential index.

Secrets live in files named by random IDs. The only place that links a
human-readable path to an ID is one encrypted index, so the store
directory leaks nothing beyond the number of secrets.

Based on pass by Jason A. Donenfeld.
"""

__version__ = "0.2.0"
__author__ = "passmanager contributors"

RECIPIENTS_FILE = "recipients.gpg"
INDEX_FILE = "index.gpg"
ROTATION_MARKER = ".rotation"
RECORD_SUFFIX = ".gpg"
