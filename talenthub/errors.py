"""Custom exception classes for the application."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from talenthub.cascade.receipts import DeletionReceipt


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotAuthenticatedError(AppError):
    """Raised when an operation is attempted without a signed-in user."""

    def __init__(self, message="Authentication required."):
        """Initialize the error."""
        super().__init__(message, 401)


class PermissionDeniedError(AppError):
    """Raised when the caller is signed in but lacks the required record."""

    def __init__(self, message="You are not authorized to perform this action."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class ConflictError(AppError):
    """Raised when an entity is already in a terminal state."""

    def __init__(self, message="Resource is already in a terminal state."):
        """Initialize the error."""
        super().__init__(message, 409)


class PartialCascadeFailure(AppError):
    """A cascade finished but some dependent records could not be deleted.

    This is a warning, not a failure of the parent deletion: the receipt
    lists what was removed and what has to be reconciled by hand.
    """

    def __init__(self, receipt: DeletionReceipt, message=None):
        """Initialize the error."""
        super().__init__(
            message
            or f"{receipt.root} {receipt.root_id} deleted with "
            f"{len(receipt.errors)} failed dependent deletion(s).",
            207,
        )
        self.receipt = receipt


class DownstreamUnavailable(AppError):
    """Raised when the document store or email relay is unreachable."""

    def __init__(self, message="A downstream service is unavailable."):
        """Initialize the error."""
        super().__init__(message, 503)
