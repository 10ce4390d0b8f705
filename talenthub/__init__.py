"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask, current_app, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .core import constants
from .extensions import csrf, mail
from .store import get_store


def _flag(name, default):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from the best available credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        MAIL_SERVER=os.environ.get("MAIL_SERVER") or "smtp.gmail.com",
        MAIL_PORT=int(os.environ.get("MAIL_PORT") or 587),
        MAIL_USE_TLS=_flag("MAIL_USE_TLS", "true"),
        MAIL_USE_SSL=_flag("MAIL_USE_SSL", "false"),
        MAIL_USERNAME=os.environ.get("MAIL_USERNAME"),
        MAIL_PASSWORD=os.environ.get("MAIL_PASSWORD"),
        MAIL_DEFAULT_SENDER=os.environ.get("MAIL_DEFAULT_SENDER")
        or "noreply@talenthub.dev",
        # Base URL of the email relay (this app's /api/notifications by default)
        NOTIFICATIONS_API_URL=os.environ.get("NOTIFICATIONS_API_URL")
        or "http://localhost:27272",
        EMAIL_TIMEOUT=float(os.environ.get("EMAIL_TIMEOUT") or 10),
        EMAIL_NOTIFICATIONS_ENABLED=_flag("EMAIL_NOTIFICATIONS_ENABLED", "true"),
        # Shared secret the relay expects in X-Relay-Secret; unset leaves it open
        NOTIFICATIONS_RELAY_SECRET=os.environ.get("NOTIFICATIONS_RELAY_SECRET"),
        CASCADE_MAX_WORKERS=int(
            os.environ.get("CASCADE_MAX_WORKERS") or constants.CASCADE_MAX_WORKERS
        ),
        CASCADE_WAIT_SECONDS=float(
            os.environ.get("CASCADE_WAIT_SECONDS") or constants.CASCADE_WAIT_SECONDS
        ),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)
        if not app.config.get("NOTIFICATIONS_RELAY_SECRET"):
            app.logger.warning(
                "NOTIFICATIONS_RELAY_SECRET is not set; the email relay accepts "
                "unauthenticated requests."
            )

    # Initialize extensions
    mail.init_app(app)
    csrf.init_app(app)

    # Register blueprints
    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import collab as collab_bp

    app.register_blueprint(collab_bp.bp)

    from . import notifications as notifications_bp

    # The relay is called server-to-server by EmailDispatcher.
    csrf.exempt(notifications_bp.bp)
    app.register_blueprint(notifications_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    from . import commands

    commands.init_app(app)

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the user data from Firestore and store it in g."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        try:
            user = get_store().find(constants.USERS, user_id)
            if user is not None:
                g.user = user
                g.user["uid"] = user_id  # Ensure uid is in the user object
            else:
                # User ID in session but no user in DB. Clear the session.
                session.clear()
                current_app.logger.warning(
                    f"User {user_id} in session but not found in Firestore."
                )
        except Exception as e:
            current_app.logger.error(f"Error loading user from session: {e}")
            session.clear()  # Clear session on error to be safe

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
