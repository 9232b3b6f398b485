"""
Email sending through the HTTP mail gateway.
"""

import logging
from dataclasses import dataclass

import requests

from alertmail.config import MailApiSettings

logger = logging.getLogger(__name__)

USER_AGENT = "alertmail/1.0"
SUCCESS_CODES = (0, 200)


@dataclass
class TransportResult:
    """Outcome of one gateway call."""

    success: bool
    message: str


class MailApiTransport:
    """Posts form-encoded send requests to the mail gateway."""

    def __init__(self, config: MailApiSettings, session: requests.Session | None = None):
        """
        Initialize transport.

        Args:
            config: Mail gateway settings
            session: Optional requests session (defaults to module-level requests)
        """
        self.config = config
        self.session = session

    def send(self, addresses: list[str], subject: str, body_html: str) -> TransportResult:
        """
        Send one HTML email.

        Args:
            addresses: Recipient email addresses
            subject: Email subject line
            body_html: HTML body

        Returns:
            TransportResult; never raises
        """
        if not addresses:
            logger.warning("No recipients specified, skipping email")
            return TransportResult(False, "no recipients")

        url = self.config.endpoint
        if self.config.debug_mode:
            logger.info(f"Using debug mail endpoint: {url}")

        to_list = ",".join(addresses)
        form = {
            "opdAppid": self.config.app_id,
            "opdAppsecret": self.config.app_secret,
            "to_list": to_list,
            "subject": subject,
            "body": body_html,
            "mimetype": "html",
        }
        headers = {
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "User-Agent": USER_AGENT,
            "Accept-Charset": "UTF-8",
        }

        logger.info(f"Sending email to {to_list}: {subject}")
        poster = self.session or requests
        try:
            r = poster.post(url, data=form, headers=headers, timeout=self.config.timeout_seconds)
        except requests.RequestException as e:
            logger.error(f"Mail gateway request failed: {e}")
            return TransportResult(False, f"request failed: {e}")

        logger.debug(f"Mail gateway response {r.status_code}: {r.text}")

        if not 200 <= r.status_code < 300:
            return TransportResult(False, f"HTTP {r.status_code}: {r.text[:200]}")

        try:
            payload = r.json()
        except ValueError:
            logger.error(f"Unparsable mail gateway response: {r.text[:200]}")
            return TransportResult(False, f"invalid response: {r.text[:200]}")

        if not isinstance(payload, dict):
            return TransportResult(False, f"invalid response: {r.text[:200]}")

        code = payload.get("code")
        if isinstance(code, str) and code.isdigit():
            code = int(code)
        message = str(payload.get("message", ""))
        # JSON false compares equal to 0
        if isinstance(code, bool) or code not in SUCCESS_CODES:
            return TransportResult(False, f"code={code}, message={message}")

        logger.info(f"Email sent successfully to {len(addresses)} recipient(s): {message}")
        return TransportResult(True, message)
