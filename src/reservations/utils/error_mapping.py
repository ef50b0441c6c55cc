import logging

from botocore.exceptions import ClientError
from pydantic import ValidationError

from reservations.utils.custom_exceptions import (
    HoldExpired,
    InvalidInput,
    InvalidTransition,
    NoAvailableRooms,
    NoRoomsFound,
    NotFoundException,
    PermissionDenied,
    PersistenceFailure,
    PriceMismatch,
    RoomAlreadyExists,
    Unauthorized,
)
from reservations.utils.custom_response import send_custom_response

logger = logging.getLogger(__name__)

_CONFLICTS = (
    NoAvailableRooms,
    NoRoomsFound,
    InvalidTransition,
    HoldExpired,
    PriceMismatch,
    RoomAlreadyExists,
)


def format_validation_error(err: ValidationError) -> str:
    parts = []
    for error in err.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts) or "Invalid request"


def error_response(err: Exception):
    """Translate an exception raised while serving a request into an HTTP response."""
    if isinstance(err, ValidationError):
        return send_custom_response(400, format_validation_error(err))
    if isinstance(err, (InvalidInput, ValueError)):
        return send_custom_response(400, str(err))
    if isinstance(err, Unauthorized):
        return send_custom_response(401, str(err))
    if isinstance(err, PermissionDenied):
        return send_custom_response(403, str(err))
    if isinstance(err, NotFoundException):
        return send_custom_response(err.status_code, str(err))
    if isinstance(err, _CONFLICTS):
        return send_custom_response(409, str(err))
    if isinstance(err, PersistenceFailure):
        logger.error(f"Persistence failure: {err}")
        return send_custom_response(500, "Could not save changes, please retry")
    if isinstance(err, ClientError):
        logger.error(f"AWS client error: {err}")
        return send_custom_response(500, "Internal server error")
    logger.exception("Unhandled error")
    return send_custom_response(500, "Internal server error")
