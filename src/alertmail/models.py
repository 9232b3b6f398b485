"""
Data types shared by the store, the digest pipeline and the HTTP API.
"""

from dataclasses import dataclass, field
from datetime import datetime

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_time(ts: datetime | None) -> str | None:
    """Format a timestamp the way the API and notifications show it."""
    if ts is None:
        return None
    # strftime("%Y") does not zero-pad years below 1000 on every platform
    return f"{ts.year:04d}-{ts:%m-%d %H:%M:%S}"


@dataclass
class AlertRecord:
    """One stored alert for one recipient token."""

    id: int
    message: str
    recipient: str
    alert_time: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message": self.message,
            "recipient": self.recipient,
            "alert_time": format_time(self.alert_time),
            "created_at": format_time(self.created_at),
            "updated_at": format_time(self.updated_at),
        }


@dataclass
class DirectoryEntry:
    """Maps a short identifier (e_name) to a deliverable address."""

    name: str
    e_name: str
    email: str


@dataclass(frozen=True)
class ResolvedRecipient:
    """Outcome of resolving one recipient token."""

    address: str
    resolved: bool


@dataclass
class Digest:
    """Alerts for one recipient token within one query window, newest first."""

    recipient: str
    alerts: list[AlertRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.alerts)


@dataclass
class Notification:
    """A rendered message ready for the transport."""

    subject: str
    body_html: str


@dataclass
class DispatchSummary:
    """Aggregated outcome of one dispatch run."""

    success_count: int = 0
    failure_count: int = 0
    succeeded_addresses: list[str] = field(default_factory=list)
    failed_addresses: list[str] = field(default_factory=list)
    unresolved_tokens: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure_count == 0

    def record(self, address: str, success: bool) -> None:
        if success:
            self.success_count += 1
            self.succeeded_addresses.append(address)
        else:
            self.failure_count += 1
            self.failed_addresses.append(address)

    def to_dict(self) -> dict:
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "succeeded_addresses": list(self.succeeded_addresses),
            "failed_addresses": list(self.failed_addresses),
            "unresolved_tokens": list(self.unresolved_tokens),
        }
