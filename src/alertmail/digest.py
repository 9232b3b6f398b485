"""
Groups stored alerts into per-recipient digests for one time window.
"""

import logging
from datetime import datetime

from alertmail.database import Database
from alertmail.models import AlertRecord, Digest

logger = logging.getLogger(__name__)


def group_by_recipient(alerts: list[AlertRecord]) -> list[Digest]:
    """
    Partition alerts by recipient token.

    Relative order of alerts is kept within each digest; digests are
    ordered by the first appearance of their token.
    """
    digests: dict[str, Digest] = {}
    for alert in alerts:
        digest = digests.get(alert.recipient)
        if digest is None:
            digest = digests[alert.recipient] = Digest(recipient=alert.recipient)
        digest.alerts.append(alert)
    return list(digests.values())


def build_digests(db: Database, start: datetime, end: datetime) -> list[Digest]:
    """
    Build one digest per recipient with alerts in [start, end].

    Args:
        db: Alert store
        start: Window start (inclusive)
        end: Window end (inclusive)

    Returns:
        Non-empty digests, each ordered by alert_time descending. Recipients
        are ordered by their most recent alert in the window.
    """
    alerts = db.get_alerts_by_time_range(start, end)
    digests = group_by_recipient(alerts)
    logger.info(
        f"Built {len(digests)} digest(s) from {len(alerts)} alert(s) "
        f"between {start} and {end}"
    )
    return digests
