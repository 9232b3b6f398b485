"""Shared pytest fixtures for alertmail tests."""

import json
import tempfile
from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock

import pytest

from alertmail.alerting.transport import TransportResult
from alertmail.database import Database
from alertmail.directory import RecipientDirectory, RecipientResolver
from alertmail.models import DirectoryEntry

FALLBACK = "operator@example.com"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def mock_db_path(temp_dir: Path) -> Path:
    """Create a temporary SQLite database path."""
    return temp_dir / "test_alerts.sqlite3"


@pytest.fixture
def db(mock_db_path: Path) -> Generator[Database, None, None]:
    """Alert store backed by a temporary SQLite file."""
    database = Database(str(mock_db_path))
    yield database
    database.close()


@pytest.fixture
def today() -> datetime:
    """Fixed reference time used as the 'current' time in pipeline tests."""
    return datetime(2024, 1, 15, 22, 0, 0)


@pytest.fixture
def directory() -> RecipientDirectory:
    """Directory mapping alice and bob; carol has no address."""
    return RecipientDirectory(
        [
            DirectoryEntry(name="Alice", e_name="alice", email="alice@co.com"),
            DirectoryEntry(name="Bob", e_name="bob", email="bob@co.com"),
            DirectoryEntry(name="Carol", e_name="carol", email=""),
        ]
    )


@pytest.fixture
def resolver(directory: RecipientDirectory) -> RecipientResolver:
    return RecipientResolver(directory, FALLBACK)


@pytest.fixture
def ok_transport() -> Mock:
    """Transport double whose sends all succeed."""
    transport = Mock()
    transport.send.return_value = TransportResult(True, "ok")
    return transport


@pytest.fixture
def directory_file(temp_dir: Path) -> Path:
    """Recipient directory JSON on disk."""
    path = temp_dir / "userlist.json"
    path.write_text(
        json.dumps(
            [
                {"name": "Alice", "e_name": "alice", "email": "alice@co.com"},
                {"name": "Bob", "e_name": "bob", "email": "bob@co.com"},
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def sample_config_dict() -> dict:
    """Sample configuration dictionary for testing."""
    return {
        "database": {"db_path": "./data/alerts.sqlite3"},
        "mail": {
            "api_url": "http://mail.example.com/send",
            "app_id": "app-id",
            "app_secret": "app-secret",
            "sender": "alerts@example.com",
        },
        "directory": {
            "path": "./userlist.json",
            "fallback_address": FALLBACK,
        },
        "schedule": {
            "enabled": True,
            "cron": "0 22 * * *",
            "start_hour": 19,
            "start_minute": 0,
            "end_hour": 22,
            "end_minute": 0,
        },
        "log": {"level": "INFO"},
    }


@pytest.fixture
def sample_config_yaml(temp_dir: Path, sample_config_dict: dict, directory_file: Path) -> Path:
    """Create a temporary YAML config file."""
    import yaml

    config_path = temp_dir / "test_config.yaml"

    # Update paths to use temp_dir
    config_dict = sample_config_dict.copy()
    config_dict["database"] = {"db_path": str(temp_dir / "alerts.sqlite3")}
    config_dict["directory"] = {"path": str(directory_file), "fallback_address": FALLBACK}

    with open(config_path, "w") as f:
        yaml.dump(config_dict, f)

    return config_path


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration between tests."""
    import logging

    # Store original handlers
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level

    yield

    # Restore original state
    root_logger.handlers = original_handlers
    root_logger.level = original_level
