"""
Request status transition table.

Maps (current status, actor role) to the statuses that actor may move the
request to through ``transition_status``. PENDING -> OFFERING and
-> ACCEPTED are absent on purpose: they only happen as a side effect of
offer submission and acceptance.
"""

from typing import FrozenSet

from accounts.models import Role
from assistance.models import RequestStatus

ALLOWED_TRANSITIONS = {
    # Driver may withdraw at any non-terminal status
    (RequestStatus.PENDING, Role.DRIVER): frozenset({RequestStatus.CANCELLED}),
    (RequestStatus.OFFERING, Role.DRIVER): frozenset({RequestStatus.CANCELLED}),
    (RequestStatus.ACCEPTED, Role.DRIVER): frozenset({RequestStatus.CANCELLED}),
    (RequestStatus.EN_ROUTE, Role.DRIVER): frozenset({RequestStatus.CANCELLED}),
    (RequestStatus.ARRIVED, Role.DRIVER): frozenset({RequestStatus.CANCELLED}),

    # Assigned mechanic drives the job forward
    (RequestStatus.ACCEPTED, Role.MECHANIC): frozenset({RequestStatus.EN_ROUTE}),
    (RequestStatus.EN_ROUTE, Role.MECHANIC): frozenset({RequestStatus.ARRIVED}),
    (RequestStatus.ARRIVED, Role.MECHANIC): frozenset({RequestStatus.COMPLETED}),
}


def allowed_transitions(current: str, role: str) -> FrozenSet[str]:
    return ALLOWED_TRANSITIONS.get((current, role), frozenset())


def can_transition(current: str, target: str, role: str) -> bool:
    return target in allowed_transitions(current, role)


def next_mechanic_status(current: str):
    """The single forward step the assigned mechanic can take, or None."""
    targets = allowed_transitions(current, Role.MECHANIC)
    return next(iter(targets), None)
