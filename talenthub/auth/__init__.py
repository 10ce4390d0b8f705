"""Authentication helpers shared by the API blueprints."""

from .decorators import current_actor, login_required
from .models import Actor

__all__ = ["Actor", "current_actor", "login_required"]
