"""Decorators for the API blueprints."""

from functools import wraps

from flask import g, session

from talenthub.errors import NotAuthenticatedError, PermissionDeniedError

from .models import Actor


def login_required(f=None, admin_required=False):
    """Reject the request if the user is not logged in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session or not g.get("user"):
                raise NotAuthenticatedError()
            if admin_required and not g.user.get("isAdmin"):
                raise PermissionDeniedError(
                    "You are not authorized to perform admin actions."
                )
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator


def current_actor(fallback=None):
    """Return the signed-in user as an Actor."""
    user = g.get("user")
    if not user:
        raise NotAuthenticatedError()
    if fallback:
        return Actor.from_user(user, fallback)
    return Actor.from_user(user)
