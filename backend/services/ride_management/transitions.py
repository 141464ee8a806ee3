"""
Ride status transition table.

The lifecycle only ever moves a ride along an edge listed here. Terminal
states have no outgoing edges.
"""

from typing import Dict, FrozenSet

from rides.models import (
    PENDING, SEARCHING, ASSIGNED, ARRIVING, IN_PROGRESS, COMPLETED, CANCELLED,
    TERMINAL_STATUSES,
)
from .exceptions import InvalidTransitionError

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    PENDING: frozenset({SEARCHING, CANCELLED}),
    SEARCHING: frozenset({ASSIGNED, CANCELLED}),
    ASSIGNED: frozenset({ARRIVING, CANCELLED}),
    ARRIVING: frozenset({IN_PROGRESS, CANCELLED}),
    IN_PROGRESS: frozenset({COMPLETED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}

# Timestamp column stamped when a ride enters each status
STATUS_TIMESTAMP_FIELDS = {
    ASSIGNED: "assigned_at",
    ARRIVING: "arriving_at",
    IN_PROGRESS: "started_at",
    COMPLETED: "completed_at",
    CANCELLED: "cancelled_at",
}

# Statuses only the assigned driver may move a ride into
DRIVER_ONLY_TARGETS = frozenset({ARRIVING, IN_PROGRESS, COMPLETED})


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, frozenset())


def validate_transition(current: str, new: str) -> None:
    """
    Raises:
        InvalidTransitionError: If current -> new is not an edge of the table
    """
    if current in TERMINAL_STATUSES:
        raise InvalidTransitionError(f"Ride is already {current}")
    if not can_transition(current, new):
        raise InvalidTransitionError(f"Cannot move ride from {current} to {new}")
