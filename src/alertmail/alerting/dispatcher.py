"""
Dispatcher sending rendered digests to their recipients.
"""

import logging
from datetime import datetime

from alertmail.alerting.templates import render, render_fallback_digest
from alertmail.alerting.transport import MailApiTransport
from alertmail.directory import RecipientResolver
from alertmail.models import Digest, DispatchSummary

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """Raised after a dispatch run in which at least one send failed."""

    def __init__(self, summary: DispatchSummary):
        self.summary = summary
        super().__init__(
            f"Some notifications failed: {summary.success_count} succeeded, "
            f"{summary.failure_count} failed ({', '.join(summary.failed_addresses)})"
        )


class NotificationDispatcher:
    """Resolves, renders and sends one notification per digest."""

    def __init__(
        self,
        resolver: RecipientResolver,
        transport: MailApiTransport,
        fallback_address: str | None = None,
    ):
        """
        Initialize dispatcher.

        Args:
            resolver: Recipient token resolver
            transport: Mail gateway transport
            fallback_address: Operator mailbox for the merged fallback digest
                (defaults to the resolver's fallback)
        """
        self.resolver = resolver
        self.transport = transport
        self.fallback_address = fallback_address or resolver.fallback_address

    def dispatch_all(self, digests: list[Digest], now: datetime | None = None) -> DispatchSummary:
        """
        Send every digest, sequentially.

        Resolved recipients get one email each. All unresolved recipients are
        merged into a single email to the operator mailbox. A failed send
        never stops later sends.

        Args:
            digests: Digests to send
            now: Generation time passed to the renderer

        Returns:
            DispatchSummary when every send succeeded

        Raises:
            DispatchError: After all attempts, if any send failed
        """
        summary = DispatchSummary()
        unresolved: list[Digest] = []

        logger.info(f"Dispatching {len(digests)} digest(s)")

        for digest in digests:
            recipient = self.resolver.resolve(digest.recipient)
            if not recipient.resolved:
                unresolved.append(digest)
                continue

            notification = render(digest, recipient, now=now)
            result = self.transport.send(
                [recipient.address], notification.subject, notification.body_html
            )
            summary.record(recipient.address, result.success)
            if result.success:
                logger.info(
                    f"Sent {len(digest)} alert(s) for {digest.recipient} to {recipient.address}"
                )
            else:
                logger.error(
                    f"Failed to send digest for {digest.recipient} to {recipient.address}: "
                    f"{result.message}"
                )

        if unresolved:
            summary.unresolved_tokens = [d.recipient for d in unresolved]
            notification = render_fallback_digest(unresolved, now=now)
            result = self.transport.send(
                [self.fallback_address], notification.subject, notification.body_html
            )
            summary.record(self.fallback_address, result.success)
            if result.success:
                logger.info(
                    f"Sent merged digest for {len(unresolved)} unresolved recipient(s) "
                    f"to {self.fallback_address}"
                )
            else:
                logger.error(
                    f"Failed to send merged digest to {self.fallback_address}: {result.message}"
                )

        logger.info(
            f"Dispatch complete: {summary.success_count} succeeded, "
            f"{summary.failure_count} failed, {len(summary.unresolved_tokens)} unresolved"
        )

        if not summary.ok:
            raise DispatchError(summary)
        return summary
