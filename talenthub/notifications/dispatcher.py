"""Outbound email dispatch through the notification relay."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from talenthub.core import constants
from talenthub.errors import DownstreamUnavailable

logger = logging.getLogger(__name__)

# endpoint key -> (payload key, field holding the recipient address)
ENDPOINTS: dict[str, tuple[str, str]] = {
    constants.EMAIL_PROJECT_APPROVED: ("projectData", "contactEmail"),
    constants.EMAIL_PROJECT_REJECTED: ("projectData", "contactEmail"),
    constants.EMAIL_EVENT_PUBLISHED: ("eventData", "organizerEmail"),
    constants.EMAIL_EVENT_REJECTED: ("eventData", "organizerEmail"),
    constants.EMAIL_REVIEW_APPROVED: ("completionData", "adminEmail"),
    constants.EMAIL_REVIEW_REJECTED: ("completionData", "adminEmail"),
    constants.EMAIL_APPLICATION_APPROVED: ("applicationData", "applicantEmail"),
    constants.EMAIL_APPLICATION_REJECTED: ("applicationData", "applicantEmail"),
    constants.EMAIL_SUBMITTED_FOR_REVIEW: ("projectData", "contactEmail"),
    constants.EMAIL_BADGE_AWARDED: ("memberData", "memberEmail"),
}


@dataclass
class DispatchOutcome:
    """Result of a single email dispatch."""

    endpoint_key: str
    ok: bool
    error: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint_key,
            "ok": self.ok,
            "skipped": self.skipped,
            "error": self.error,
        }


class EmailDispatcher:
    """POST typed notification payloads to the email relay.

    The dispatcher never raises: a failed or unreachable relay is logged and
    reported through the returned :class:`DispatchOutcome`.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10,
        enabled: bool = True,
        session: Optional[requests.Session] = None,
        secret: Optional[str] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.enabled = enabled
        self.session = session
        self.headers = {constants.RELAY_SECRET_HEADER: secret} if secret else {}

    def url_for(self, endpoint_key: str) -> str:
        return f"{self.base_url}/api/notifications/{endpoint_key}"

    def dispatch(self, endpoint_key: str, payload: dict[str, Any]) -> DispatchOutcome:
        """Send ``payload`` to the relay endpoint ``endpoint_key``."""
        shape = ENDPOINTS.get(endpoint_key)
        if shape is None:
            logger.error(f"Unknown email endpoint: {endpoint_key}")
            return DispatchOutcome(endpoint_key, False, "unknown endpoint")

        payload_key, recipient_field = shape
        data = payload.get(payload_key)
        if not isinstance(data, dict):
            logger.error(f"{endpoint_key} payload is missing {payload_key}")
            return DispatchOutcome(endpoint_key, False, f"missing {payload_key}")
        if not data.get(recipient_field):
            logger.warning(
                f"Skipping {endpoint_key}: no {recipient_field} in {payload_key}"
            )
            return DispatchOutcome(
                endpoint_key, False, f"missing {recipient_field}", skipped=True
            )

        if not self.enabled:
            logger.info(f"Email dispatch disabled; skipping {endpoint_key}")
            return DispatchOutcome(endpoint_key, True, skipped=True)

        try:
            return self._post(endpoint_key, payload)
        except DownstreamUnavailable as e:
            logger.error(f"Email relay unavailable for {endpoint_key}: {e.message}")
            return DispatchOutcome(endpoint_key, False, e.message)

    def _post(self, endpoint_key: str, payload: dict[str, Any]) -> DispatchOutcome:
        poster = self.session.post if self.session is not None else requests.post
        try:
            response = poster(
                self.url_for(endpoint_key),
                json=payload,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DownstreamUnavailable(str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.ok and body.get("success", False):
            logger.info(f"Email sent via {endpoint_key}")
            return DispatchOutcome(endpoint_key, True)

        if response.status_code >= 500:
            raise DownstreamUnavailable(
                body.get("error") or f"relay returned {response.status_code}"
            )

        error = body.get("error") or f"relay returned {response.status_code}"
        logger.error(f"Email via {endpoint_key} failed: {error}")
        return DispatchOutcome(endpoint_key, False, error)
