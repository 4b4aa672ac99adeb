"""Reservation status machine.

Creation states are not transitions: public bookings start in
PENDING_VERIFICATION, staff bookings start APPROVED. Everything after that
must follow ALLOWED_TRANSITIONS.
"""
from typing import Dict, FrozenSet

from domain.enums import ReservationStatus
from domain.exceptions import InvalidTransitionError


ALLOWED_TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.PENDING_VERIFICATION: frozenset({
        ReservationStatus.PENDING_PAYMENT,
        ReservationStatus.APPROVED,
        ReservationStatus.REJECTED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.PENDING_PAYMENT: frozenset({
        ReservationStatus.APPROVED,
        ReservationStatus.REJECTED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.APPROVED: frozenset({ReservationStatus.CANCELLED}),
    ReservationStatus.REJECTED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}

# Statuses that hold a room against new bookings
BLOCKING_ON_CREATE: FrozenSet[ReservationStatus] = frozenset({
    ReservationStatus.PENDING_VERIFICATION,
    ReservationStatus.PENDING_PAYMENT,
    ReservationStatus.APPROVED,
})

# Pending requests may coexist; only one of them can end up approved
BLOCKING_ON_APPROVAL: FrozenSet[ReservationStatus] = frozenset({ReservationStatus.APPROVED})

TERMINAL_STATUSES: FrozenSet[ReservationStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

_VERBS = {
    ReservationStatus.PENDING_PAYMENT: "verify",
    ReservationStatus.APPROVED: "approve",
    ReservationStatus.REJECTED: "reject",
    ReservationStatus.CANCELLED: "cancel",
}


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: ReservationStatus, target: ReservationStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed"""
    if can_transition(current, target):
        return

    if current == target:
        raise InvalidTransitionError(f"Reservation is already {target.value}")

    verb = _VERBS.get(target)
    if verb is None:
        raise InvalidTransitionError(
            f"Cannot move a reservation from {current.value} back to {target.value}"
        )
    raise InvalidTransitionError(f"Cannot {verb} a reservation that is {current.value}")
