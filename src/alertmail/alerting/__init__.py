"""
Digest notification system for alertmail.

Renders per-recipient alert digests and sends them through the HTTP mail
gateway, merging unresolvable recipients into one operator message.
"""

from alertmail.alerting.dispatcher import DispatchError, NotificationDispatcher
from alertmail.alerting.transport import MailApiTransport, TransportResult

__all__ = ["DispatchError", "MailApiTransport", "NotificationDispatcher", "TransportResult"]
