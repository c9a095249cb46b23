"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - request_lifecycle: ServiceRequest state machine and error types
    - negotiation: Offers, counter offers and acceptance
    - matching: Visibility rules and nearby mechanics
"""

# Expose commonly used functions at package level
from .matching import (
    open_requests_for_mechanic,
    active_request_for_driver,
    active_job_for_mechanic,
    nearby_mechanics,
)
from .request_lifecycle import (
    create_service_request,
    cancel_service_request,
    transition_status,
    get_active_request,
    reconcile_acceptances,
    AssistanceError,
)
from .negotiation import (
    submit_offer,
    submit_counter_offer,
    cancel_counter_offer,
    reject_counter_offer,
    accept_offer,
    mechanic_accepts_counter,
    decline_offer,
)

__all__ = [
    # Matching
    "open_requests_for_mechanic",
    "active_request_for_driver",
    "active_job_for_mechanic",
    "nearby_mechanics",
    # Request lifecycle
    "create_service_request",
    "cancel_service_request",
    "transition_status",
    "get_active_request",
    "reconcile_acceptances",
    # Negotiation
    "submit_offer",
    "submit_counter_offer",
    "cancel_counter_offer",
    "reject_counter_offer",
    "accept_offer",
    "mechanic_accepts_counter",
    "decline_offer",
    # Exceptions
    "AssistanceError",
]
