"""
Email content templates for alert digests.

Templates are compiled once at import, so a syntax defect surfaces at
startup rather than during a scheduled run. Rendering takes an explicit
``now`` so identical inputs always give identical output.
"""

from __future__ import annotations

from datetime import datetime, time

from jinja2 import Environment

from alertmail.models import AlertRecord, Digest, Notification, ResolvedRecipient, format_time

OPERATOR_MARKER = "[OPERATOR]"

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

_STYLE = """
    <style>
        body { font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif;
               margin: 0; padding: 20px; background-color: #f5f5f5; line-height: 1.6; }
        .container { max-width: 860px; margin: 0 auto; background-color: #ffffff;
                     border-radius: 8px; overflow: hidden; }
        .header { color: white; padding: 24px; text-align: center; }
        .header h1 { margin: 0; font-size: 22px; }
        .header p { margin: 8px 0 0 0; font-size: 13px; }
        .content { padding: 24px; }
        .summary { background-color: #f8f9fa; border-left: 4px solid #007bff;
                   padding: 16px; margin-bottom: 24px; }
        .summary p { margin: 4px 0; color: #495057; }
        .warning { background-color: #f8d7da; border: 1px solid #f5c6cb;
                   border-radius: 8px; padding: 16px; margin-bottom: 24px; color: #721c24; }
        .recipient { border: 1px solid #e9ecef; border-radius: 8px; padding: 16px;
                     margin-bottom: 16px; }
        .alert-item { border: 1px solid #e9ecef; border-radius: 6px; padding: 12px;
                      margin-bottom: 10px; }
        .alert-item h4 { margin: 0 0 6px 0; color: #dc3545; font-size: 14px; }
        .alert-time { font-size: 12px; color: #6c757d; font-weight: 600; }
        .footer { background-color: #f8f9fa; padding: 16px 24px; text-align: center;
                  color: #6c757d; font-size: 12px; }
    </style>
"""

_ALERT_ITEMS = """
{% for alert in alerts %}
<div class="alert-item">
    <h4>Alert #{{ loop.index }}</h4>
    <p>{{ alert.message }}</p>
    <span class="alert-time">Time: {{ alert.alert_time }}</span>
</div>
{% endfor %}
"""

DIGEST_TEMPLATE = _env.from_string(
    """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Alert digest</title>
"""
    + _STYLE
    + """
</head>
<body>
<div class="container">
    <div class="header" style="background-color: {{ '#c82333' if not resolved else '#5a67d8' }};">
        <h1>Alert digest</h1>
        <p>Generated: {{ generated_at }}</p>
    </div>
    <div class="content">
        {% if not resolved %}
        <div class="warning">
            <h4>Recipient not found</h4>
            <p>Recipient <strong>{{ recipient }}</strong> could not be mapped to an email
               address, so this digest was sent to the operator mailbox.</p>
            <p>Please check:</p>
            <ul>
                <li>the recipient identifier is spelled correctly</li>
                <li>the recipient directory contains this identifier</li>
                <li>the directory entry has a valid email address</li>
                <li>update the recipient directory file if the entry is missing</li>
            </ul>
        </div>
        {% endif %}
        <div class="summary">
            <p><strong>Recipient:</strong> {{ recipient }}</p>
            <p><strong>Window:</strong> {{ window_start }} to {{ window_end }}</p>
            <p><strong>Alerts:</strong> {{ total_count }}</p>
        </div>
"""
    + _ALERT_ITEMS
    + """
    </div>
    <div class="footer">
        <p>Sent automatically by alertmail. Please follow up on the alerts above.</p>
    </div>
</div>
</body>
</html>
"""
)

FALLBACK_TEMPLATE = _env.from_string(
    """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Unresolved recipients</title>
"""
    + _STYLE
    + """
</head>
<body>
<div class="container">
    <div class="header" style="background-color: #c82333;">
        <h1>{{ marker }} Alert digest</h1>
        <p>Unresolved recipients | Generated: {{ generated_at }}</p>
    </div>
    <div class="content">
        <div class="warning">
            <h3>Action required</h3>
            <p>The following recipient identifiers have no email address in the
               recipient directory:</p>
            <p><strong>{{ tokens | join(", ") }}</strong></p>
            <p>Their alerts are listed below. Add the missing entries to the
               recipient directory so future digests reach them directly.</p>
        </div>
        <div class="summary">
            <p><strong>Unresolved recipients:</strong> {{ recipients | length }}</p>
            <p><strong>Total alerts:</strong> {{ total_count }}</p>
            <p><strong>Window:</strong> {{ window_start }} to {{ window_end }}</p>
        </div>
        {% for entry in recipients %}
        <div class="recipient">
            <h3>Recipient: {{ entry.recipient }} (no address)</h3>
            {% set alerts = entry.alerts %}
"""
    + _ALERT_ITEMS
    + """
        </div>
        {% endfor %}
    </div>
    <div class="footer">
        <p>Sent automatically to the operator mailbox.</p>
    </div>
</div>
</body>
</html>
"""
)


def window_bounds(alerts: list[AlertRecord], now: datetime) -> tuple[datetime, datetime]:
    """Earliest and latest alert time, or the whole day of ``now`` if empty."""
    if not alerts:
        day = now.date()
        return datetime.combine(day, time.min), datetime.combine(day, time(23, 59, 59))
    times = [a.alert_time for a in alerts]
    return min(times), max(times)


def _alert_rows(alerts: list[AlertRecord]) -> list[dict]:
    return [{"message": a.message, "alert_time": format_time(a.alert_time)} for a in alerts]


def digest_subject(recipient: str, resolved: bool, now: datetime) -> str:
    """Subject line for a single-recipient digest."""
    day = now.strftime("%Y-%m-%d")
    if not resolved:
        return f"{OPERATOR_MARKER} Alert digest - {recipient} (recipient not found) - {day}"
    return f"Alert digest - {recipient} - {day}"


def render(
    digest: Digest, resolved: ResolvedRecipient, now: datetime | None = None
) -> Notification:
    """
    Render one recipient's digest.

    Args:
        digest: Alerts for one recipient token
        resolved: Resolution outcome for the digest's token
        now: Generation time (defaults to the current time)

    Returns:
        Notification with subject and HTML body
    """
    now = now or datetime.now()
    start, end = window_bounds(digest.alerts, now)

    body = DIGEST_TEMPLATE.render(
        generated_at=format_time(now),
        recipient=digest.recipient,
        resolved=resolved.resolved,
        window_start=format_time(start),
        window_end=format_time(end),
        total_count=len(digest.alerts),
        alerts=_alert_rows(digest.alerts),
    )
    return Notification(
        subject=digest_subject(digest.recipient, resolved.resolved, now),
        body_html=body,
    )


def render_fallback_digest(digests: list[Digest], now: datetime | None = None) -> Notification:
    """
    Merge the digests of every unresolved recipient into one operator message.

    Args:
        digests: Digests whose tokens could not be resolved
        now: Generation time (defaults to the current time)

    Returns:
        Notification with subject and HTML body
    """
    now = now or datetime.now()
    tokens = [d.recipient for d in digests]
    all_alerts = [a for d in digests for a in d.alerts]
    start, end = window_bounds(all_alerts, now)

    body = FALLBACK_TEMPLATE.render(
        marker=OPERATOR_MARKER,
        generated_at=format_time(now),
        tokens=tokens,
        total_count=len(all_alerts),
        window_start=format_time(start),
        window_end=format_time(end),
        recipients=[
            {"recipient": d.recipient, "alerts": _alert_rows(d.alerts)} for d in digests
        ],
    )
    subject = (
        f"{OPERATOR_MARKER} Alert digest - {', '.join(tokens)} (recipients not found) - "
        f"{now.strftime('%Y-%m-%d')}"
    )
    return Notification(subject=subject, body_html=body)
