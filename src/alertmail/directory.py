"""
Recipient directory and token resolution.

Alert producers address alerts either with a full email address or with a
short identifier (``e_name``) that the directory maps to an address. Tokens
that cannot be mapped are redirected to an operator mailbox so no alert is
silently dropped.
"""

import json
import logging
from pathlib import Path

from alertmail.models import DirectoryEntry, ResolvedRecipient

logger = logging.getLogger(__name__)

ADDRESS_SEPARATOR = "@"


class RecipientDirectory:
    """Read-only lookup of short identifiers to email addresses."""

    def __init__(self, entries: list[DirectoryEntry] | None = None):
        self.entries = list(entries or [])

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def from_file(cls, path: Path | str) -> "RecipientDirectory":
        """
        Load the directory from a JSON list of {name, e_name, email} objects.

        A missing or malformed file is logged and yields an empty directory,
        so every non-address token falls back to the operator mailbox.
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.error(f"Recipient directory not found: {path}")
            return cls()
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load recipient directory {path}: {e}")
            return cls()

        if not isinstance(data, list):
            logger.error(f"Recipient directory {path} must contain a JSON list")
            return cls()

        entries = []
        for item in data:
            if not isinstance(item, dict):
                logger.warning(f"Skipping malformed directory entry: {item!r}")
                continue
            entries.append(
                DirectoryEntry(
                    name=str(item.get("name") or ""),
                    e_name=str(item.get("e_name") or ""),
                    email=str(item.get("email") or ""),
                )
            )

        logger.info(f"Loaded {len(entries)} recipient(s) from {path}")
        return cls(entries)

    def lookup(self, e_name: str) -> str | None:
        """Exact, case-sensitive lookup; entries with an empty email never match."""
        for entry in self.entries:
            if entry.e_name == e_name and entry.email:
                return entry.email
        return None


class RecipientResolver:
    """Turns raw recipient tokens into deliverable addresses."""

    def __init__(self, directory: RecipientDirectory, fallback_address: str):
        self.directory = directory
        self.fallback_address = fallback_address

    def resolve(self, token: str) -> ResolvedRecipient:
        """
        Resolve a recipient token.

        Args:
            token: Raw recipient token from an alert record

        Returns:
            ResolvedRecipient; ``resolved`` is False when the fallback
            address was substituted
        """
        if ADDRESS_SEPARATOR in token:
            return ResolvedRecipient(address=token, resolved=True)

        email = self.directory.lookup(token)
        if email:
            logger.debug(f"Resolved recipient {token} -> {email}")
            return ResolvedRecipient(address=email, resolved=True)

        logger.warning(
            f"Recipient {token} not found in directory, using fallback {self.fallback_address}"
        )
        return ResolvedRecipient(address=self.fallback_address, resolved=False)
