"""
alertmail - Alert ingestion with scheduled per-recipient email digests.

This package accepts alerts over HTTP, stores them in SQLite and, on a
schedule, emails each recipient a digest of their alerts for the day's
window. Recipients that cannot be resolved are merged into one message to an
operator mailbox.
"""

__version__ = "0.1.0"

from alertmail.config import Settings
from alertmail.database import Database, get_conn

__all__ = [
    "__version__",
    "Settings",
    "Database",
    "get_conn",
]
