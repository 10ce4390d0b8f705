"""The collaboration blueprint: applications, memberships and posts."""

from flask import Blueprint

bp = Blueprint("collab", __name__, url_prefix="/api/collab")

from . import routes  # noqa: E402

__all__ = ["routes"]
