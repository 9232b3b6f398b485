"""Ingestion, query and operational routes."""

import logging
import sqlite3
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from alertmail.alerting import DispatchError
from alertmail.api.schemas import CreateAlertRequest, describe_validation_error, parse_timestamp
from alertmail.models import format_time
from alertmail.scheduler import compute_window

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

alerts_bp = Blueprint("alerts", __name__)
ops_bp = Blueprint("ops", __name__)


def _error(status: int, message: str):
    return jsonify({"code": status, "message": message}), status


def _time_arg(source: dict, name: str, default: datetime) -> datetime:
    value = source.get(name)
    if not value:
        return default
    return parse_timestamp(str(value), name)


@alerts_bp.route("/alerts", methods=["POST"])
def create_alert():
    """Store an alert, one record per recipient token."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _error(400, "Request body must be a JSON object")

    try:
        req = CreateAlertRequest.model_validate(payload)
    except ValidationError as e:
        return _error(400, f"Invalid request: {describe_validation_error(e)}")

    try:
        records = current_app.alert_db.insert_alerts(req.message, req.recipients, req.alert_time)
    except sqlite3.Error as e:
        logger.error(f"Failed to store alert: {e}")
        return _error(500, f"Failed to store alert: {e}")

    logger.info(f"Stored alert for {len(records)} recipient(s): {', '.join(req.recipients)}")
    return jsonify({
        "code": 200,
        "message": "Alert created",
        "data": [r.to_dict() for r in records],
        "count": len(records),
    })


@alerts_bp.route("/alerts", methods=["GET"])
def list_alerts():
    """List alerts newest first, one page at a time."""
    page = request.args.get("page", 1, type=int)
    page_size = request.args.get("page_size", DEFAULT_PAGE_SIZE, type=int)
    if page < 1:
        page = 1
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE

    db = current_app.alert_db
    try:
        alerts = db.get_alerts(limit=page_size, offset=(page - 1) * page_size)
        total = db.count_alerts()
    except sqlite3.Error as e:
        logger.error(f"Failed to list alerts: {e}")
        return _error(500, f"Failed to list alerts: {e}")

    return jsonify({
        "code": 200,
        "message": "OK",
        "data": [a.to_dict() for a in alerts],
        "total": total,
        "page": page,
        "size": page_size,
    })


@alerts_bp.route("/alerts/period", methods=["GET"])
def list_alerts_by_period():
    """List alerts within [start_time, end_time]; defaults to today's digest window."""
    default_start, default_end = compute_window(current_app.settings.schedule, datetime.now())
    try:
        start = _time_arg(request.args, "start_time", default_start)
        end = _time_arg(request.args, "end_time", default_end)
    except ValueError as e:
        return _error(400, str(e))

    try:
        alerts = current_app.alert_db.get_alerts_by_time_range(start, end)
    except sqlite3.Error as e:
        logger.error(f"Failed to query alerts by period: {e}")
        return _error(500, f"Failed to query alerts: {e}")

    return jsonify({
        "code": 200,
        "message": "OK",
        "data": [a.to_dict() for a in alerts],
        "start_time": format_time(start),
        "end_time": format_time(end),
        "total": len(alerts),
    })


@alerts_bp.route("/alerts/recipient", methods=["GET"])
def list_alerts_by_recipient():
    """List every alert for one recipient token."""
    recipient = request.args.get("recipient", "").strip()
    if not recipient:
        return _error(400, "recipient parameter is required")

    try:
        alerts = current_app.alert_db.get_alerts_by_recipient(recipient)
    except sqlite3.Error as e:
        logger.error(f"Failed to query alerts for {recipient}: {e}")
        return _error(500, f"Failed to query alerts: {e}")

    return jsonify({
        "code": 200,
        "message": "OK",
        "data": [a.to_dict() for a in alerts],
        "recipient": recipient,
        "total": len(alerts),
    })


@alerts_bp.route("/recipients", methods=["GET"])
def list_recipients():
    """Every recipient token that has alerts."""
    try:
        recipients = current_app.alert_db.list_distinct_recipients()
    except sqlite3.Error as e:
        logger.error(f"Failed to list recipients: {e}")
        return _error(500, f"Failed to list recipients: {e}")

    return jsonify({"code": 200, "message": "OK", "data": recipients, "total": len(recipients)})


@alerts_bp.route("/digests/run", methods=["POST"])
def run_digest():
    """Run the digest pipeline now, for the configured window or an explicit one."""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return _error(400, "Request body must be a JSON object")

    now = datetime.now()
    default_start, default_end = compute_window(current_app.settings.schedule, now)
    try:
        start = _time_arg(payload, "start_time", default_start)
        end = _time_arg(payload, "end_time", default_end)
    except ValueError as e:
        return _error(400, str(e))

    window = {"start_time": format_time(start), "end_time": format_time(end)}
    try:
        summary = current_app.digest_job.run(now=now, start=start, end=end)
    except DispatchError as e:
        return jsonify({
            "code": 502,
            "message": str(e),
            "data": e.summary.to_dict(),
            **window,
        }), 502
    except sqlite3.Error as e:
        logger.error(f"Digest run failed: {e}")
        return _error(500, f"Digest run failed: {e}")

    if summary is None:
        return jsonify({"code": 200, "message": "No alerts in window", "data": None, **window})

    return jsonify({
        "code": 200,
        "message": "Digests sent",
        "data": summary.to_dict(),
        **window,
    })


@ops_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok", "message": "Service is running"})


@ops_bp.route("/config", methods=["GET"])
def show_config():
    """Mail and schedule configuration with secrets masked."""
    return jsonify({"status": "ok", **current_app.settings.public_view()})
