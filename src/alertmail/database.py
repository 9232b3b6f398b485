# alert store
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from alertmail.models import TIME_FORMAT, AlertRecord, format_time

SCHEMA = """
CREATE TABLE IF NOT EXISTS alerts(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  message TEXT NOT NULL,
  recipient TEXT NOT NULL,
  alert_time TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_alerts_alert_time ON alerts(alert_time);
CREATE INDEX IF NOT EXISTS idx_alerts_recipient ON alerts(recipient);
"""

_COLUMNS = "id, message, recipient, alert_time, created_at, updated_at"


def _to_db(ts: datetime) -> str:
    # Fixed-width text keeps lexicographic order equal to time order
    return format_time(ts)


def _from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.strptime(value, TIME_FORMAT)


def _row_to_alert(row: tuple) -> AlertRecord:
    return AlertRecord(
        id=row[0],
        message=row[1],
        recipient=row[2],
        alert_time=_from_db(row[3]),
        created_at=_from_db(row[4]),
        updated_at=_from_db(row[5]),
    )


class Database:
    """
    Thread-safe SQLite alert store.

    Uses thread-local connections so Flask request threads and the scheduler
    thread each get their own connection. Writes are serialized with a lock.
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._write_lock = threading.Lock()

        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = self._get_conn()
        conn.executescript(SCHEMA)
        conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0,  # Wait up to 30s if database is locked
            )
        conn: sqlite3.Connection = self._local.conn
        return conn

    def _select(self, where: str = "", params: tuple = (), suffix: str = "") -> list[AlertRecord]:
        conn = self._get_conn()
        sql = f"SELECT {_COLUMNS} FROM alerts"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY alert_time DESC, id DESC"
        if suffix:
            sql += f" {suffix}"
        cur = conn.execute(sql, params)
        return [_row_to_alert(row) for row in cur.fetchall()]

    def insert_alert(
        self,
        message: str,
        recipient: str,
        alert_time: datetime | None = None,
    ) -> AlertRecord:
        """
        Insert one alert record.

        Args:
            message: Alert text
            recipient: Raw recipient token (address or short identifier)
            alert_time: Event time, defaults to now

        Returns:
            The stored record with its assigned id
        """
        now = datetime.now().replace(microsecond=0)
        alert_time = (alert_time or now).replace(microsecond=0)

        with self._write_lock:
            conn = self._get_conn()
            cur = conn.execute(
                "INSERT INTO alerts(message, recipient, alert_time, created_at, updated_at) "
                "VALUES(?,?,?,?,?)",
                (message, recipient, _to_db(alert_time), _to_db(now), _to_db(now)),
            )
            conn.commit()
            alert_id = cur.lastrowid

        return AlertRecord(
            id=alert_id,
            message=message,
            recipient=recipient,
            alert_time=alert_time,
            created_at=now,
            updated_at=now,
        )

    def insert_alerts(
        self,
        message: str,
        recipients: list[str],
        alert_time: datetime | None = None,
    ) -> list[AlertRecord]:
        """
        Insert one record per recipient token in a single transaction.

        Either every record is stored or none is.
        """
        now = datetime.now().replace(microsecond=0)
        alert_time = (alert_time or now).replace(microsecond=0)
        records = []

        with self._write_lock:
            conn = self._get_conn()
            try:
                for recipient in recipients:
                    cur = conn.execute(
                        "INSERT INTO alerts(message, recipient, alert_time, created_at, "
                        "updated_at) VALUES(?,?,?,?,?)",
                        (message, recipient, _to_db(alert_time), _to_db(now), _to_db(now)),
                    )
                    records.append(
                        AlertRecord(
                            id=cur.lastrowid,
                            message=message,
                            recipient=recipient,
                            alert_time=alert_time,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

        return records

    def get_alerts(self, limit: int | None = None, offset: int = 0) -> list[AlertRecord]:
        """Get alerts newest first, optionally one page at a time."""
        if limit is None:
            return self._select()
        return self._select(suffix="LIMIT ? OFFSET ?", params=(limit, offset))

    def count_alerts(self) -> int:
        """Total number of stored alerts."""
        conn = self._get_conn()
        cur = conn.execute("SELECT COUNT(*) FROM alerts")
        return int(cur.fetchone()[0])

    def get_alerts_by_time_range(self, start: datetime, end: datetime) -> list[AlertRecord]:
        """Get alerts with start <= alert_time <= end, newest first."""
        return self._select("alert_time BETWEEN ? AND ?", (_to_db(start), _to_db(end)))

    def get_alerts_by_recipient(self, recipient: str) -> list[AlertRecord]:
        """Get all alerts for one recipient token, newest first."""
        return self._select("recipient = ?", (recipient,))

    def get_alerts_by_time_range_and_recipient(
        self, start: datetime, end: datetime, recipient: str
    ) -> list[AlertRecord]:
        """Get one recipient's alerts within [start, end], newest first."""
        return self._select(
            "alert_time BETWEEN ? AND ? AND recipient = ?",
            (_to_db(start), _to_db(end), recipient),
        )

    def list_distinct_recipients(self) -> list[str]:
        """Every recipient token that has at least one record."""
        conn = self._get_conn()
        cur = conn.execute("SELECT DISTINCT recipient FROM alerts ORDER BY recipient")
        return [row[0] for row in cur.fetchall()]

    def close(self):
        """Close this thread's connection. Call on shutdown."""
        if hasattr(self._local, "conn") and self._local.conn is not None:
            self._local.conn.close()
            self._local.conn = None


def get_conn(db_path: str) -> Database:
    """Create and return a Database instance."""
    return Database(db_path)
