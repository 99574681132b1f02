import logging

from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from . import errors

logger = logging.getLogger("rest_framework")


def _message_from(data):
    if isinstance(data, dict):
        for key in ("message", "detail"):
            if key in data:
                return str(data[key])
        return "Request could not be processed."
    if isinstance(data, list) and data:
        return str(data[0])
    return str(data)


def envelope_exception_handler(exc, context):
    """
    Converts domain errors and DRF's own exceptions into
    `{"success": false, "message": ..., "errors": ...}` responses.
    """
    if isinstance(exc, errors.FeedbackError):
        if isinstance(exc, errors.EncodingError):
            logger.error(f"Encoding error reached the API layer: {exc.message}")
        body = {"success": False, "message": exc.message}
        if exc.errors:
            body["errors"] = exc.errors
        response = Response(body, status=exc.status_code)
        retry_after = getattr(exc, "retry_after", None)
        if retry_after:
            response["Retry-After"] = str(retry_after)
        return response

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}")
        return None

    if isinstance(exc, DRFValidationError):
        response.data = {
            "success": False,
            "message": "Validation failed.",
            "errors": response.data,
        }
    else:
        response.data = {"success": False, "message": _message_from(response.data)}
    return response
