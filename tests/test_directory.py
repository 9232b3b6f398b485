"""Tests for the recipient directory and token resolution."""

import json
import logging
from pathlib import Path

from alertmail.directory import RecipientDirectory, RecipientResolver
from alertmail.models import DirectoryEntry

FALLBACK = "operator@example.com"


class TestRecipientDirectory:
    """Test loading and lookup."""

    def test_from_file(self, directory_file: Path):
        directory = RecipientDirectory.from_file(directory_file)

        assert len(directory) == 2
        assert directory.lookup("alice") == "alice@co.com"

    def test_missing_file_gives_empty_directory(self, temp_dir: Path, caplog):
        with caplog.at_level(logging.ERROR):
            directory = RecipientDirectory.from_file(temp_dir / "missing.json")

        assert len(directory) == 0
        assert "not found" in caplog.text

    def test_invalid_json_gives_empty_directory(self, temp_dir: Path, caplog):
        path = temp_dir / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.ERROR):
            directory = RecipientDirectory.from_file(path)

        assert len(directory) == 0
        assert "Failed to load" in caplog.text

    def test_non_list_gives_empty_directory(self, temp_dir: Path):
        path = temp_dir / "object.json"
        path.write_text(json.dumps({"alice": "alice@co.com"}), encoding="utf-8")

        assert len(RecipientDirectory.from_file(path)) == 0

    def test_malformed_entries_skipped(self, temp_dir: Path):
        path = temp_dir / "mixed.json"
        path.write_text(
            json.dumps(["junk", {"name": "Bob", "e_name": "bob", "email": "bob@co.com"}]),
            encoding="utf-8",
        )

        directory = RecipientDirectory.from_file(path)

        assert len(directory) == 1
        assert directory.lookup("bob") == "bob@co.com"

    def test_lookup_is_case_sensitive(self, directory: RecipientDirectory):
        assert directory.lookup("Alice") is None

    def test_entry_with_empty_email_never_matches(self, directory: RecipientDirectory):
        assert directory.lookup("carol") is None

    def test_first_usable_entry_wins(self):
        directory = RecipientDirectory(
            [
                DirectoryEntry(name="Dan", e_name="dan", email=""),
                DirectoryEntry(name="Dan", e_name="dan", email="dan@co.com"),
                DirectoryEntry(name="Dan 2", e_name="dan", email="dan2@co.com"),
            ]
        )
        assert directory.lookup("dan") == "dan@co.com"


class TestRecipientResolver:
    """Test RecipientResolver.resolve."""

    def test_address_passes_through(self, resolver: RecipientResolver):
        result = resolver.resolve("someone@else.org")

        assert result.address == "someone@else.org"
        assert result.resolved is True

    def test_address_not_looked_up(self):
        resolver = RecipientResolver(RecipientDirectory(), FALLBACK)

        result = resolver.resolve("x@y")

        assert result.address == "x@y"
        assert result.resolved is True

    def test_directory_hit(self, resolver: RecipientResolver):
        result = resolver.resolve("bob")

        assert result.address == "bob@co.com"
        assert result.resolved is True

    def test_unknown_token_uses_fallback(self, resolver: RecipientResolver, caplog):
        with caplog.at_level(logging.WARNING):
            result = resolver.resolve("zz99")

        assert result.address == FALLBACK
        assert result.resolved is False
        assert "zz99" in caplog.text

    def test_empty_email_entry_uses_fallback(self, resolver: RecipientResolver):
        result = resolver.resolve("carol")

        assert result.address == FALLBACK
        assert result.resolved is False

    def test_resolution_is_deterministic(self, resolver: RecipientResolver):
        assert resolver.resolve("alice") == resolver.resolve("alice")
