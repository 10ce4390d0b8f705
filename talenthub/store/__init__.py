"""Document store access."""

from firebase_admin import firestore
from flask import g

from .services import EntityStore


def get_store() -> EntityStore:
    """Return the request's EntityStore, creating it on first use."""
    if "store" not in g:
        g.store = EntityStore(firestore.client())
    return g.store


__all__ = ["EntityStore", "get_store"]
