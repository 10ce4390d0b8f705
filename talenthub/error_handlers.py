from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .errors import (
    AppError,
    ConflictError,
    DownstreamUnavailable,
    NotAuthenticatedError,
    NotFoundError,
    PartialCascadeFailure,
    PermissionDeniedError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(message, status_code, data=None):
    return (
        jsonify({"success": False, "message": message, "data": data}),
        status_code,
    )


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors with a 400 JSON body."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotAuthenticatedError)
def handle_not_authenticated_error(error):
    """Handles requests made without a signed-in user."""
    current_app.logger.warning(f"Not Authenticated: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(PermissionDeniedError)
def handle_permission_denied_error(error):
    """Handles callers that lack the required role."""
    current_app.logger.warning(f"Permission Denied: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(ConflictError)
def handle_conflict_error(error):
    """Handles transitions attempted on an entity in a terminal state."""
    current_app.logger.warning(f"Conflict Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(PartialCascadeFailure)
def handle_partial_cascade_failure(error):
    """Reports a finished cascade whose dependent deletions partly failed."""
    current_app.logger.warning(f"Partial Cascade Failure: {error.message}")
    return (
        jsonify(
            {
                "success": True,
                "message": error.message,
                "data": error.receipt.to_dict(),
            }
        ),
        error.status_code,
    )


@error_handlers_bp.app_errorhandler(DownstreamUnavailable)
def handle_downstream_unavailable(error):
    """Handles an unreachable document store or email relay."""
    current_app.logger.error(f"Downstream Unavailable: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("Not found.", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests using the wrong HTTP method."""
    return _error_response("Method not allowed.", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """
    Handles CSRF errors, which usually indicate a session timeout or invalid form submission.
    """
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return _error_response(
        "Your session may have expired. Please try your action again.", 400
    )
