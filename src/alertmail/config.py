"""
Configuration management using Pydantic for validation.

Supports loading from:
- YAML files (primary)
- Environment variables with ALERTMAIL_ prefix
"""

from pathlib import Path
from typing import Literal

import yaml
from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SECRET_MASK = "***hidden***"


class DatabaseSettings(BaseModel):
    """Alert store configuration."""

    db_path: Path = Field(
        default=Path("./alerts.sqlite3"),
        description="Path to SQLite database holding alert records",
    )

    @field_validator("db_path", mode="before")
    @classmethod
    def parse_db_path(cls, v):
        """Convert string path to Path object."""
        if isinstance(v, str):
            return Path(v)
        return v


class MailApiSettings(BaseModel):
    """HTTP mail gateway configuration."""

    api_url: str = Field(
        default="http://localhost:6709/mail/email/send_email.php",
        description="Mail gateway endpoint accepting form-encoded send requests",
    )
    app_id: str = Field(
        default="",
        description="Application id sent as opdAppid",
    )
    app_secret: str = Field(
        default="",
        description="Application secret sent as opdAppsecret",
    )
    sender: str = Field(
        default="alerts@example.com",
        description="From address shown in the configuration endpoint",
    )
    debug_mode: bool = Field(
        default=False,
        description="Route all mail through debug_api_url instead of api_url",
    )
    debug_api_url: str | None = Field(
        default=None,
        description="Gateway endpoint used when debug_mode is enabled",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-request timeout so a stalled gateway cannot hang a run",
    )

    @model_validator(mode="after")
    def validate_debug_url(self):
        """Validate the debug endpoint is set when debug mode is on."""
        if self.debug_mode and not self.debug_api_url:
            raise ValueError("debug_api_url is required when mail.debug_mode is enabled")
        return self

    @property
    def endpoint(self) -> str:
        """Endpoint actually used for sending."""
        if self.debug_mode and self.debug_api_url:
            return self.debug_api_url
        return self.api_url


class DirectorySettings(BaseModel):
    """Recipient directory configuration."""

    path: Path = Field(
        default=Path("./userlist.json"),
        description="JSON list of {name, e_name, email} entries",
    )
    fallback_address: str = Field(
        default="operator@example.com",
        description="Operator mailbox receiving alerts for unresolvable recipients",
    )

    @field_validator("path", mode="before")
    @classmethod
    def parse_path(cls, v):
        """Convert string path to Path object."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("fallback_address")
    @classmethod
    def validate_fallback_address(cls, v: str) -> str:
        """The fallback must itself be deliverable."""
        if "@" not in v:
            raise ValueError(f"fallback_address must be an email address, got {v!r}")
        return v


class ScheduleSettings(BaseModel):
    """Digest job schedule and daily query window."""

    enabled: bool = Field(
        default=True,
        description="Run the digest job on schedule (HTTP API is unaffected)",
    )
    cron: str = Field(
        default="0 22 * * *",
        description="Five-field crontab expression, default every day at 22:00",
    )
    start_hour: int = Field(default=19, ge=0, le=23, description="Window start hour")
    start_minute: int = Field(default=0, ge=0, le=59, description="Window start minute")
    end_hour: int = Field(default=22, ge=0, le=23, description="Window end hour")
    end_minute: int = Field(default=0, ge=0, le=59, description="Window end minute")

    @model_validator(mode="after")
    def validate_cron(self):
        """Reject schedules that can never fire."""
        try:
            CronTrigger.from_crontab(self.cron)
        except ValueError as e:
            raise ValueError(f"Invalid schedule {self.cron!r}: {e}") from e
        return self

    def window_label(self) -> str:
        """Human readable HH:MM - HH:MM label."""
        return (
            f"{self.start_hour:02d}:{self.start_minute:02d} - "
            f"{self.end_hour:02d}:{self.end_minute:02d}"
        )


class ServerSettings(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class LogSettings(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    file_path: Path | None = Field(
        default=None,
        description="Optional log file (rotated by size)",
    )
    max_bytes: int = Field(
        default=100 * 1024 * 1024,
        ge=1024,
        description="Rotate the log file once it reaches this size",
    )
    backup_count: int = Field(
        default=10,
        ge=0,
        description="Number of rotated log files to keep",
    )
    console: bool = Field(
        default=True,
        description="Also log to stderr",
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v


class Settings(BaseSettings):
    """
    Main application settings.

    Can be loaded from:
    - YAML file: Settings.from_yaml("config.yaml")
    - Environment variables: ALERTMAIL_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="ALERTMAIL_",
        env_nested_delimiter="__",
        extra="ignore",  # Ignore unknown fields for forward compatibility
    )

    database: DatabaseSettings = Field(
        default_factory=DatabaseSettings,
        description="Alert store settings",
    )
    mail: MailApiSettings = Field(
        default_factory=MailApiSettings,
        description="Mail gateway settings",
    )
    directory: DirectorySettings = Field(
        default_factory=DirectorySettings,
        description="Recipient directory settings",
    )
    schedule: ScheduleSettings = Field(
        default_factory=ScheduleSettings,
        description="Digest job schedule",
    )
    server: ServerSettings = Field(
        default_factory=ServerSettings,
        description="HTTP server settings",
    )
    log: LogSettings = Field(
        default_factory=LogSettings,
        description="Logging settings",
    )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Settings":
        """
        Load settings from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Settings instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save settings to a YAML file."""
        path = Path(path)
        data = self.model_dump(mode="json")

        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def public_view(self) -> dict:
        """Mail and schedule configuration with secrets masked."""
        return {
            "mail": {
                "api_url": self.mail.api_url,
                "app_id": self.mail.app_id,
                "app_secret": SECRET_MASK,
                "sender": self.mail.sender,
                "debug_mode": self.mail.debug_mode,
                "debug_api_url": self.mail.debug_api_url,
            },
            "schedule": {
                "enabled": self.schedule.enabled,
                "cron": self.schedule.cron,
                "start_time": f"{self.schedule.start_hour:02d}:{self.schedule.start_minute:02d}",
                "end_time": f"{self.schedule.end_hour:02d}:{self.schedule.end_minute:02d}",
            },
            "directory": {
                "fallback_address": self.directory.fallback_address,
            },
        }
