"""Service layer behind the admin and collaboration blueprints."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from flask import current_app, g

from talenthub.auth.models import Actor
from talenthub.cascade import CascadeDeletionEngine
from talenthub.core import constants
from talenthub.errors import NotAuthenticatedError, PermissionDeniedError
from talenthub.lifecycle import ContentService, LifecycleEngine, MembershipService
from talenthub.notifications import EmailDispatcher, NotificationFanout
from talenthub.store import EntityStore, get_store

logger = logging.getLogger(__name__)


class AdminGateway:
    """Entry point for privileged operations.

    Holds one instance of each engine, wired to the same store, and checks
    the caller's admin record before anything is dispatched.
    """

    def __init__(
        self,
        store: EntityStore,
        lifecycle: LifecycleEngine,
        cascade: CascadeDeletionEngine,
        membership: MembershipService,
        content: ContentService,
    ) -> None:
        self.store = store
        self.lifecycle = lifecycle
        self.cascade = cascade
        self.membership = membership
        self.content = content

    @classmethod
    def from_config(cls, store: EntityStore, config: Mapping[str, Any]) -> AdminGateway:
        """Build the engines from application configuration."""
        fanout = NotificationFanout(store)
        dispatcher = EmailDispatcher(
            config.get("NOTIFICATIONS_API_URL", ""),
            timeout=float(config.get("EMAIL_TIMEOUT", 10)),
            enabled=bool(config.get("EMAIL_NOTIFICATIONS_ENABLED", True)),
            secret=config.get("NOTIFICATIONS_RELAY_SECRET"),
        )
        cascade = CascadeDeletionEngine(
            store,
            fanout,
            max_workers=int(
                config.get("CASCADE_MAX_WORKERS", constants.CASCADE_MAX_WORKERS)
            ),
        )
        return cls(
            store,
            LifecycleEngine(store, fanout, dispatcher, cascade),
            cascade,
            MembershipService(store, fanout, dispatcher),
            ContentService(store, fanout),
        )

    def authorize(self, user_id: Optional[str]) -> Actor:
        """Return the admin actor for ``user_id`` or raise."""
        if not user_id:
            raise NotAuthenticatedError()
        user = self.store.find(constants.USERS, user_id)
        if user is None:
            raise NotAuthenticatedError(f"User {user_id} does not exist.")
        if not user.get("isAdmin"):
            logger.warning(f"User {user_id} attempted an admin action")
            raise PermissionDeniedError(
                "You are not authorized to perform admin actions."
            )
        return Actor.from_user({**user, "uid": user_id})


def get_gateway() -> AdminGateway:
    """Return the request's AdminGateway, creating it on first use."""
    if "gateway" not in g:
        g.gateway = AdminGateway.from_config(get_store(), current_app.config)
    return g.gateway
