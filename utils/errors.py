from rest_framework import status


class FeedbackError(Exception):
    """Base class for errors the API turns into a `{success: false}` body."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed."

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(FeedbackError):
    """Malformed or out-of-range input."""
    default_message = "Validation failed."


class NotFoundError(FeedbackError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class AuthorizationError(FeedbackError):
    """Role or ownership mismatch."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action."


class ConflictError(FeedbackError):
    """Duplicate review, helpful mark or report."""
    default_message = "This action has already been performed."


class UpstreamUnavailableError(FeedbackError):
    """
    An external tier (database, secondary API, AI provider, IPFS) is unreachable
    or answered with 5xx/429. The error that triggers a tier fallthrough by
    default.
    """
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable. Please try again later."

    def __init__(self, message=None, errors=None, retry_after=None):
        super().__init__(message, errors)
        self.retry_after = retry_after


class EncodingError(FeedbackError):
    """Hash/serialization failure. Callers substitute a fallback value."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Record could not be encoded."
