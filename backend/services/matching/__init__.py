"""
Matching and visibility policy.

This module handles:
    - Which open requests an online mechanic sees
    - Which offers each party can act on, and with which commands
    - Locating online mechanics near a driver
"""

from .visibility import (
    ACCEPT,
    COUNTER,
    CANCEL_COUNTER,
    DECLINE,
    REVISE,
    ACCEPT_COUNTER,
    REJECT_COUNTER,
    is_request_open,
    is_offer_actionable,
    is_visible_to_mechanic,
    driver_actions,
    mechanic_actions,
    actions_for,
    open_requests_for_mechanic,
    active_request_for_driver,
    active_job_for_mechanic,
    request_history,
)
from .nearby import nearby_mechanics

__all__ = [
    # Actions
    "ACCEPT",
    "COUNTER",
    "CANCEL_COUNTER",
    "DECLINE",
    "REVISE",
    "ACCEPT_COUNTER",
    "REJECT_COUNTER",
    # Predicates
    "is_request_open",
    "is_offer_actionable",
    "is_visible_to_mechanic",
    "driver_actions",
    "mechanic_actions",
    "actions_for",
    # Projections
    "open_requests_for_mechanic",
    "active_request_for_driver",
    "active_job_for_mechanic",
    "request_history",
    "nearby_mechanics",
]
