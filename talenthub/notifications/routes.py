"""Email relay endpoints that deliver lifecycle emails through Flask-Mail."""

from __future__ import annotations

import hmac
from typing import Any

from flask import current_app, jsonify, request

from talenthub.core import constants
from talenthub.notifications.dispatcher import ENDPOINTS
from talenthub.utils import EmailError, send_email

from . import bp

SUBJECTS = {
    constants.EMAIL_PROJECT_APPROVED: "Your project has been approved",
    constants.EMAIL_PROJECT_REJECTED: "Your project submission needs revision",
    constants.EMAIL_EVENT_PUBLISHED: "Your event is now live",
    constants.EMAIL_EVENT_REJECTED: "Your event submission needs revision",
    constants.EMAIL_REVIEW_APPROVED: "Your project review has been approved",
    constants.EMAIL_REVIEW_REJECTED: "Your project review needs revision",
    constants.EMAIL_APPLICATION_APPROVED: "Your application has been approved",
    constants.EMAIL_APPLICATION_REJECTED: "An update on your application",
    constants.EMAIL_SUBMITTED_FOR_REVIEW: "Your project has been submitted for review",
    constants.EMAIL_BADGE_AWARDED: "You have been awarded a badge",
}


def _title_for(data: dict[str, Any]) -> str:
    return (
        data.get("projectTitle")
        or data.get("eventTitle")
        or data.get("applicantName")
        or ""
    )


def _authorized() -> bool:
    secret = current_app.config.get("NOTIFICATIONS_RELAY_SECRET")
    if not secret:
        return True
    supplied = request.headers.get(constants.RELAY_SECRET_HEADER, "")
    return hmac.compare_digest(supplied.encode(), secret.encode())


@bp.route("/<string:endpoint_key>", methods=["POST"])
def relay(endpoint_key):
    """Send the email for ``endpoint_key`` to the payload's recipient."""
    if not _authorized():
        current_app.logger.warning(
            f"Rejected unauthenticated relay call: {endpoint_key}"
        )
        return jsonify({"success": False, "error": "Unauthorized"}), 401

    shape = ENDPOINTS.get(endpoint_key)
    if shape is None:
        return jsonify({"success": False, "error": "Unknown endpoint"}), 404

    payload_key, recipient_field = shape
    body = request.get_json(silent=True) or {}
    data = body.get(payload_key)
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": f"Missing {payload_key}"}), 400

    recipient = data.get(recipient_field)
    if not recipient:
        return (
            jsonify({"success": False, "error": f"Missing {recipient_field}"}),
            400,
        )

    extra = {k: v for k, v in body.items() if k != payload_key and isinstance(v, dict)}
    try:
        send_email(
            to=recipient,
            subject=SUBJECTS[endpoint_key],
            template="email/notification.html",
            endpoint_key=endpoint_key,
            title=_title_for(data) or _title_for(extra.get("projectData", {})),
            data=data,
            extra=extra,
        )
    except EmailError as e:
        current_app.logger.error(f"Relay {endpoint_key} to {recipient} failed: {e}")
        return jsonify({"success": False, "error": str(e)}), 500

    return jsonify(
        {
            "success": True,
            "results": {"endpoint": endpoint_key, "recipient": recipient},
        }
    )
