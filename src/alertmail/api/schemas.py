"""Request parsing for the ingestion and query API."""

import re
from datetime import datetime

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from alertmail.models import TIME_FORMAT

FULLWIDTH_COMMA = "，"
TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", re.ASCII)


def parse_recipients(value: str) -> list[str]:
    """Split a comma-separated recipient string into tokens, dropping blanks."""
    value = value.replace(FULLWIDTH_COMMA, ",")
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_timestamp(value: str, field: str) -> datetime:
    """Parse a YYYY-MM-DD HH:MM:SS timestamp or raise ValueError naming the field."""
    value = value.strip()
    message = f"{field} must use the format YYYY-MM-DD HH:MM:SS"
    # strptime alone also accepts unpadded fields such as 2024-1-5 3:4:5
    if not TIMESTAMP_PATTERN.fullmatch(value):
        raise ValueError(message)
    try:
        return datetime.strptime(value, TIME_FORMAT)
    except ValueError:
        raise ValueError(message) from None


def describe_validation_error(error: ValidationError) -> str:
    """Flatten pydantic errors into one line for the API response."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


class CreateAlertRequest(BaseModel):
    """Body of POST /api/v1/alerts."""

    message: str
    recipient: str
    alert_time: datetime | None = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be empty")
        return v

    @field_validator("alert_time", mode="before")
    @classmethod
    def parse_alert_time(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, str):
            return parse_timestamp(v, "alert_time")
        raise ValueError("alert_time must be a string")

    @model_validator(mode="after")
    def require_recipients(self):
        if not self.recipients:
            raise ValueError("recipient must not be empty")
        return self

    @property
    def recipients(self) -> list[str]:
        return parse_recipients(self.recipient)
