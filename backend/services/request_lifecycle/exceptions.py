"""Custom exceptions for the assistance engine.

Every error carries a stable ``error_code`` and the HTTP ``status_code``
adapters should answer with.
"""

import functools
import logging

from django.db import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


class AssistanceError(Exception):
    """Base class for all engine errors."""
    error_code = "assistance_error"
    status_code = 400

    def __init__(self, message: str = "", **extra):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or ""
        self.extra = extra


# ---------------------- NotFound ----------------------

class NotFoundError(AssistanceError):
    """The referenced record does not exist."""
    error_code = "not_found"
    status_code = 404


class RequestNotFoundError(NotFoundError):
    """Raised when a service request cannot be found."""
    error_code = "request_not_found"


class OfferNotFoundError(NotFoundError):
    """Raised when an offer cannot be found."""
    error_code = "offer_not_found"


class ParticipantNotFoundError(NotFoundError):
    """Raised when a driver or mechanic profile cannot be found."""
    error_code = "participant_not_found"


# ---------------------- Conflict ----------------------

class ConflictError(AssistanceError):
    """A command's precondition no longer holds."""
    error_code = "conflict"
    status_code = 409


class RequestNotAvailableError(ConflictError):
    """Raised when a request is no longer in a state that allows the operation."""
    error_code = "request_not_available"


class OfferNotActionableError(ConflictError):
    """Raised when an offer is not in a state that allows the operation."""
    error_code = "offer_not_actionable"


class ActiveRequestExistsError(ConflictError):
    """Raised when a driver already has an active request."""
    error_code = "active_request_exists"


class InvalidTransitionError(ConflictError):
    """Raised when a status change is not allowed from the current status."""
    error_code = "invalid_transition"


class MechanicNotAvailableError(ConflictError):
    """Raised when an offline mechanic tries to bid."""
    error_code = "mechanic_not_available"


# ---------------------- Validation / ownership ----------------------

class InvalidInputError(AssistanceError):
    """A required field is missing or malformed."""
    error_code = "validation_error"
    status_code = 400


class PermissionDeniedError(AssistanceError):
    """The caller does not own the record or has the wrong role."""
    error_code = "forbidden"
    status_code = 403


# ---------------------- Upstream ----------------------

class UpstreamUnavailableError(AssistanceError):
    """
    The database could not be reached.

    The effect of the failed operation is unknown: the write may or may not
    have landed, so callers must re-read before retrying.
    """
    error_code = "upstream_unavailable"
    status_code = 503
    effect_unknown = True


def upstream_guard(func):
    """Translate database connectivity failures into UpstreamUnavailableError."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.exception("Store unavailable during %s", func.__name__)
            raise UpstreamUnavailableError(
                "The service is temporarily unavailable; the outcome of this action is unknown."
            ) from exc
    return wrapper
