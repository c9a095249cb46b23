"""
Request lifecycle service - the ServiceRequest state machine.

This module handles:
    - Opening assistance requests
    - Status transitions (en route, arrived, completed, cancelled)
    - Reading a participant's active request
    - Repairing torn acceptances
"""

from .lifecycle import (
    ServiceResult,
    create_service_request,
    cancel_service_request,
    transition_status,
    get_active_request,
)
from .reconciliation import reconcile_acceptances
from .transitions import allowed_transitions, can_transition, next_mechanic_status

from .exceptions import (
    AssistanceError,
    NotFoundError,
    RequestNotFoundError,
    OfferNotFoundError,
    ParticipantNotFoundError,
    ConflictError,
    RequestNotAvailableError,
    OfferNotActionableError,
    ActiveRequestExistsError,
    InvalidTransitionError,
    MechanicNotAvailableError,
    InvalidInputError,
    PermissionDeniedError,
    UpstreamUnavailableError,
)

__all__ = [
    # Lifecycle operations
    "ServiceResult",
    "create_service_request",
    "cancel_service_request",
    "transition_status",
    "get_active_request",
    "reconcile_acceptances",
    # Transition table
    "allowed_transitions",
    "can_transition",
    "next_mechanic_status",
    # Exceptions
    "AssistanceError",
    "NotFoundError",
    "RequestNotFoundError",
    "OfferNotFoundError",
    "ParticipantNotFoundError",
    "ConflictError",
    "RequestNotAvailableError",
    "OfferNotActionableError",
    "ActiveRequestExistsError",
    "InvalidTransitionError",
    "MechanicNotAvailableError",
    "InvalidInputError",
    "PermissionDeniedError",
    "UpstreamUnavailableError",
]
