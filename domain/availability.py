"""Availability and occupancy rules.

Pure functions over already-loaded reservations: no clock, no storage. The
same checks back both enforcement (services) and display (room status).
"""
from datetime import date, timedelta
from typing import Iterable, List, Optional, AbstractSet

from domain.entities import Reservation, Room
from domain.enums import ReservationStatus, RoomStatus
from domain.status_machine import BLOCKING_ON_APPROVAL
from domain.value_objects import DateRange


def conflicting_reservations(
    room_id: int,
    candidate: DateRange,
    existing: Iterable[Reservation],
    blocking_states: AbstractSet[ReservationStatus],
    exclude_reservation_id: Optional[int] = None
) -> List[Reservation]:
    """Reservations of ``room_id`` in a blocking state that overlap ``candidate``"""
    return [
        r for r in existing
        if r.room_id == room_id
        and r.status in blocking_states
        and (exclude_reservation_id is None or r.id != exclude_reservation_id)
        and r.date_range.overlaps(candidate)
    ]


def is_available(
    room_id: int,
    candidate: DateRange,
    existing: Iterable[Reservation],
    blocking_states: AbstractSet[ReservationStatus],
    exclude_reservation_id: Optional[int] = None
) -> bool:
    """True if no blocking reservation of the room overlaps ``candidate``"""
    return not conflicting_reservations(
        room_id, candidate, existing, blocking_states, exclude_reservation_id
    )


def is_occupied_on(room_id: int, day: date, reservations: Iterable[Reservation]) -> bool:
    """True if an approved guest sleeps in the room on the night of ``day``"""
    tonight = DateRange(check_in=day, check_out=day + timedelta(days=1))
    return not is_available(room_id, tonight, reservations, BLOCKING_ON_APPROVAL)


def project_room_status(room: Room, reservations: Iterable[Reservation], as_of: date) -> RoomStatus:
    """Live status of a room, never stored.

    Flags win over bookings: a deleted or closed room reports so even when an
    approved guest is booked in it today.
    """
    if not room.active and not room.available:
        return RoomStatus.DELETED
    if not room.active or not room.available:
        return RoomStatus.CLOSED
    if is_occupied_on(room.id, as_of, reservations):
        return RoomStatus.OCCUPIED
    return RoomStatus.FREE
