"""Application Services - Business use cases"""
import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from domain.auth import OperatorInDB
from domain.availability import conflicting_reservations, project_room_status
from domain.entities import Reservation, Room, RoomType, Person, Inquiry
from domain.enums import ReservationStatus, RoomStatus, Role
from domain.exceptions import (
    ValidationError, NotFoundError, ConflictError,
    AuthenticationError, InactiveAccountError
)
from domain.repositories import (
    ReservationRepository, RoomRepository, RoomTypeRepository,
    PersonRepository, InquiryRepository, OperatorRepository
)
from domain.status_machine import BLOCKING_ON_CREATE, BLOCKING_ON_APPROVAL, ensure_transition
from domain.value_objects import DateRange, PersonInfo
from infrastructure.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


def build_date_range(check_in: date, check_out: date) -> DateRange:
    """DateRange from request dates, rejecting zero-night and reversed stays"""
    try:
        return DateRange(check_in=check_in, check_out=check_out)
    except ValueError:
        raise ValidationError(
            f"Invalid dates: check-out ({check_out}) must be after check-in ({check_in})"
        )


class PersonService:
    """Service for customer records"""

    def __init__(self, repository: PersonRepository):
        self.repository = repository

    async def create_person(self, info: PersonInfo) -> Person:
        """Register a new customer; email must be unused"""
        async with self.repository.email_lock(info.email):
            if await self.repository.find_by_email(info.email):
                raise ValidationError("Email is already registered")
            return await self.repository.save(Person.from_info(info))

    async def get_person(self, person_id: int) -> Person:
        person = await self.repository.find_by_id(person_id)
        if not person:
            raise NotFoundError(f"Person {person_id} not found")
        return person

    async def get_all_persons(self) -> List[Person]:
        return await self.repository.find_all()

    async def resolve_or_create(self, info: PersonInfo, refresh: bool = False) -> Person:
        """Reuse the person registered under ``info.email`` or create one.

        With ``refresh`` the stored contact details are replaced by ``info``.
        """
        async with self.repository.email_lock(info.email):
            person = await self.repository.find_by_email(info.email)
            if person is None:
                person = await self.repository.save(Person.from_info(info))
                logger.info("Registered person %s %s (%s)", person.id, person.full_name, person.email)
                return person

            if refresh:
                person.refresh(info)
                person = await self.repository.update(person)
            return person


class ReservationService:
    """Service for Reservation business use cases"""

    def __init__(self,
                 repository: ReservationRepository,
                 room_repo: RoomRepository,
                 person_service: PersonService,
                 room_type_repo: Optional[RoomTypeRepository] = None):
        self.repository = repository
        self.room_repo = room_repo
        self.person_service = person_service
        self.room_type_repo = room_type_repo

    # ==================== CREATION ====================
    async def create_public_booking(
        self,
        person_info: PersonInfo,
        room_id: int,
        check_in: date,
        check_out: date,
        notes: Optional[str] = None
    ) -> Reservation:
        """Self-service booking for a specific room.

        Starts in PENDING_VERIFICATION and, like the historical public
        endpoint, does not look at other bookings of the room. Use
        create_landing_booking for the checked variant.
        """
        date_range = build_date_range(check_in, check_out)
        room = await self._get_bookable_room(room_id)

        async with self.repository.room_lock(room.id):
            room = await self._get_bookable_room(room.id)
            person = await self.person_service.resolve_or_create(person_info)
            reservation = Reservation.create_public(person.id, room.id, date_range, notes)
            saved = await self.repository.save(reservation)

        logger.warning(
            "Public booking %s for room %s (%s to %s) saved without availability check",
            saved.id, room.id, check_in, check_out
        )
        return saved

    async def create_landing_booking(
        self,
        person_info: PersonInfo,
        room_type_id: int,
        check_in: date,
        check_out: date,
        notes: Optional[str] = None,
        today: Optional[date] = None
    ) -> Reservation:
        """Self-service booking by room type, assigned to the first free room.

        Candidates are checked against every blocking reservation, so a
        pending request also keeps the room from being handed out again.
        """
        date_range = build_date_range(check_in, check_out)
        if check_in < (today or date.today()):
            raise ValidationError("Cannot book dates in the past")

        room_type = await self._get_room_type(room_type_id)
        candidates = [r for r in await self.room_repo.find_by_type(room_type.id) if r.is_open_for_booking]

        for room in candidates:
            async with self.repository.room_lock(room.id):
                current = await self.room_repo.find_by_id(room.id)
                if current is None or not current.is_open_for_booking:
                    continue
                existing = await self.repository.find_by_room(room.id, BLOCKING_ON_CREATE)
                if conflicting_reservations(room.id, date_range, existing, BLOCKING_ON_CREATE):
                    continue

                person = await self.person_service.resolve_or_create(person_info)
                reservation = Reservation.create_public(person.id, room.id, date_range, notes)
                saved = await self.repository.save(reservation)

            logger.info(
                "Landing booking %s assigned to room %s (%s) for %s to %s",
                saved.id, room.id, room_type.slug, check_in, check_out
            )
            return saved

        logger.info("No %s room free for %s to %s", room_type.slug, check_in, check_out)
        raise ConflictError(
            f"No rooms of type {room_type.label} are available for the selected dates"
        )

    async def create_staff_booking(
        self,
        actor_id: int,
        room_id: int,
        check_in: date,
        check_out: date,
        notes: Optional[str] = None,
        person_id: Optional[int] = None,
        person_info: Optional[PersonInfo] = None
    ) -> Reservation:
        """Booking entered by an operator or admin, approved on creation"""
        date_range = build_date_range(check_in, check_out)
        room = await self._get_bookable_room(room_id)

        if person_id is not None:
            await self.person_service.get_person(person_id)
        elif person_info is None:
            raise ValidationError("Either person_id or the person's details are required")

        async with self.repository.room_lock(room.id):
            # Flags may have changed while waiting for the lock
            room = await self._get_bookable_room(room.id)
            existing = await self.repository.find_by_room(room.id, BLOCKING_ON_CREATE)
            conflicts = conflicting_reservations(room.id, date_range, existing, BLOCKING_ON_CREATE)
            if conflicts:
                logger.info(
                    "Staff booking for room %s (%s to %s) refused, overlaps reservation %s",
                    room.id, check_in, check_out, conflicts[0].id
                )
                raise ConflictError(
                    f"Room {room.name} already has a booking overlapping {check_in} to {check_out}"
                )

            if person_id is None:
                person_id = (await self.person_service.resolve_or_create(person_info)).id

            reservation = Reservation.create_by_staff(actor_id, person_id, room.id, date_range, notes)
            saved = await self.repository.save(reservation)

        logger.info("Staff booking %s for room %s created by operator %s", saved.id, room.id, actor_id)
        return saved

    # ==================== STATUS TRANSITIONS ====================
    async def verify(self, actor_id: int, reservation_id: int) -> Reservation:
        """Guest identity confirmed, waiting for payment"""
        return await self._transition(reservation_id, lambda r: r.verify(actor_id))

    async def approve(self, actor_id: int, reservation_id: int) -> Reservation:
        """Approve reservation unless another approved booking already holds the room"""
        reservation = await self.get_reservation(reservation_id)

        async with self.repository.room_lock(reservation.room_id):
            reservation = await self.get_reservation(reservation_id)
            ensure_transition(reservation.status, ReservationStatus.APPROVED)

            approved = await self.repository.find_by_room(reservation.room_id, BLOCKING_ON_APPROVAL)
            conflicts = conflicting_reservations(
                reservation.room_id, reservation.date_range, approved,
                BLOCKING_ON_APPROVAL, exclude_reservation_id=reservation.id
            )
            if conflicts:
                logger.info(
                    "Approval of reservation %s refused, overlaps approved reservation %s",
                    reservation.id, conflicts[0].id
                )
                raise ConflictError(
                    "An approved reservation already overlaps these dates for this room"
                )

            reservation.approve(actor_id)
            updated = await self.repository.update(reservation)

        logger.info("Reservation %s approved by operator %s", reservation_id, actor_id)
        return updated

    async def reject(self, actor_id: int, reservation_id: int) -> Reservation:
        return await self._transition(reservation_id, lambda r: r.reject(actor_id))

    async def cancel(self, actor_id: int, reservation_id: int) -> Reservation:
        return await self._transition(reservation_id, lambda r: r.cancel(actor_id))

    # ==================== QUERIES ====================
    async def get_reservation(self, reservation_id: int) -> Reservation:
        """Get reservation by ID"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    async def get_all_reservations(self) -> List[Reservation]:
        return await self.repository.find_all()

    async def list_for_room(self, room_id: int) -> List[Reservation]:
        await self._get_room(room_id)
        return await self.repository.find_by_room(room_id)

    async def list_overlapping(self, room_id: int, date_range: DateRange) -> List[Reservation]:
        """Reservations of a room touching the given range, earliest first"""
        reservations = await self.list_for_room(room_id)
        matching = [r for r in reservations if r.date_range.overlaps(date_range)]
        return sorted(matching, key=lambda r: r.date_range.check_in)

    async def approved_ranges_for_room_type(self, room_type_id: int) -> Tuple[RoomType, List[DateRange]]:
        """Approved stays in active rooms of a type, for the public calendar"""
        room_type = await self._get_room_type(room_type_id)
        room_ids = {r.id for r in await self.room_repo.find_by_type(room_type.id) if r.active}

        approved = await self.repository.find_by_status(BLOCKING_ON_APPROVAL)
        ranges = [r.date_range for r in approved if r.room_id in room_ids]
        return room_type, sorted(ranges, key=lambda d: d.check_in)

    # ==================== PRIVATE METHODS ====================
    async def _transition(self, reservation_id: int, action: Callable[[Reservation], None]) -> Reservation:
        reservation = await self.get_reservation(reservation_id)

        async with self.repository.room_lock(reservation.room_id):
            reservation = await self.get_reservation(reservation_id)
            previous = reservation.status
            action(reservation)
            updated = await self.repository.update(reservation)

        logger.info(
            "Reservation %s moved from %s to %s by operator %s",
            reservation_id, previous.value, updated.status.value, updated.modified_by
        )
        return updated

    async def _get_room(self, room_id: int) -> Room:
        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def _get_bookable_room(self, room_id: int) -> Room:
        room = await self._get_room(room_id)
        if not room.is_open_for_booking:
            raise ConflictError(f"Room {room.name} is not open for bookings")
        return room

    async def _get_room_type(self, room_type_id: int) -> RoomType:
        room_type = None
        if self.room_type_repo is not None:
            room_type = await self.room_type_repo.find_by_id(room_type_id)
        if not room_type:
            raise NotFoundError(f"Room type {room_type_id} not found")
        return room_type


class RoomService:
    """Service for room inventory and live status"""

    def __init__(self,
                 repository: RoomRepository,
                 room_type_repo: RoomTypeRepository,
                 reservation_repo: ReservationRepository):
        self.repository = repository
        self.room_type_repo = room_type_repo
        self.reservation_repo = reservation_repo

    async def create_room(
        self,
        name: str,
        room_type_id: int,
        notes: Optional[str] = None,
        active: bool = True,
        available: bool = True
    ) -> Room:
        await self.get_room_type(room_type_id)
        if await self.repository.find_by_name(name):
            raise ValidationError(f"Room name {name} already exists")

        room = await self.repository.save(Room(
            name=name,
            room_type_id=room_type_id,
            notes=notes,
            active=active,
            available=available
        ))
        logger.info("Room %s (%s) created", room.id, room.name)
        return room

    async def get_room(self, room_id: int) -> Room:
        room = await self.repository.find_by_id(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def get_all_rooms(self) -> List[Room]:
        return await self.repository.find_all()

    async def update_room(self, room_id: int, name: str, room_type_id: int, notes: Optional[str] = None) -> Room:
        room = await self.get_room(room_id)
        await self.get_room_type(room_type_id)

        same_name = await self.repository.find_by_name(name)
        if same_name and same_name.id != room_id:
            raise ValidationError(f"Room name {name} already exists")

        room.update_details(name, room_type_id, notes)
        return await self.repository.update(room)

    async def update_notes(self, room_id: int, notes: Optional[str]) -> Room:
        room = await self.get_room(room_id)
        room.update_notes(notes)
        return await self.repository.update(room)

    async def deactivate(self, room_id: int) -> Room:
        return await self._apply(room_id, Room.deactivate, "deactivated")

    async def reactivate(self, room_id: int) -> Room:
        return await self._apply(room_id, Room.reactivate, "reactivated")

    async def block(self, room_id: int) -> Room:
        return await self._apply(room_id, Room.block, "blocked")

    async def unblock(self, room_id: int) -> Room:
        return await self._apply(room_id, Room.unblock, "unblocked")

    async def delete(self, room_id: int) -> Room:
        return await self._apply(room_id, Room.delete, "deleted")

    # ==================== ROOM TYPES ====================
    async def get_room_type(self, room_type_id: int) -> RoomType:
        room_type = await self.room_type_repo.find_by_id(room_type_id)
        if not room_type:
            raise NotFoundError(f"Room type {room_type_id} not found")
        return room_type

    async def get_all_room_types(self) -> List[RoomType]:
        return await self.room_type_repo.find_all()

    # ==================== LIVE STATUS ====================
    async def live_status(self, room_id: int, as_of: date) -> Tuple[Room, RoomStatus]:
        room = await self.get_room(room_id)
        approved = await self.reservation_repo.find_by_room(room.id, BLOCKING_ON_APPROVAL)
        return room, project_room_status(room, approved, as_of)

    async def live_statuses(self, as_of: date) -> List[Tuple[Room, RoomStatus]]:
        rooms = await self.repository.find_all()
        approved = await self.reservation_repo.find_by_status(BLOCKING_ON_APPROVAL)
        return [(room, project_room_status(room, approved, as_of)) for room in rooms]

    async def status_summary(self, as_of: date) -> Dict[RoomStatus, int]:
        """Room count per live status, every status present"""
        summary = {status: 0 for status in RoomStatus}
        for _, status in await self.live_statuses(as_of):
            summary[status] += 1
        return summary

    async def _apply(self, room_id: int, action: Callable[[Room], None], verb: str) -> Room:
        async with self.reservation_repo.room_lock(room_id):
            room = await self.get_room(room_id)
            action(room)
            updated = await self.repository.update(room)
        logger.info("Room %s %s", room_id, verb)
        return updated


class InquiryService:
    """Service for customer inquiries"""

    def __init__(self, repository: InquiryRepository, person_service: PersonService):
        self.repository = repository
        self.person_service = person_service

    async def create_inquiry(self, person_info: PersonInfo, text: str) -> Inquiry:
        """Public question; the sender's details overwrite any stored ones"""
        if not text or not text.strip():
            raise ValidationError("Inquiry text is required")

        person = await self.person_service.resolve_or_create(person_info, refresh=True)
        inquiry = await self.repository.save(Inquiry.create(person.id, text.strip()))
        logger.info("Inquiry %s received from person %s", inquiry.id, person.id)
        return inquiry

    async def get_inquiry(self, inquiry_id: int) -> Inquiry:
        inquiry = await self.repository.find_by_id(inquiry_id)
        if not inquiry:
            raise NotFoundError(f"Inquiry {inquiry_id} not found")
        return inquiry

    async def get_all_inquiries(self) -> List[Inquiry]:
        return await self.repository.find_all()

    async def resolve(self, actor_id: int, inquiry_id: int) -> Inquiry:
        inquiry = await self.get_inquiry(inquiry_id)
        inquiry.resolve(actor_id)
        updated = await self.repository.update(inquiry)
        logger.info("Inquiry %s resolved by operator %s", inquiry_id, actor_id)
        return updated


class OperatorService:
    """Service for staff accounts"""

    def __init__(self, repository: OperatorRepository):
        self.repository = repository

    async def create_operator(
        self,
        national_id: str,
        name: str,
        email: str,
        password: str,
        role: Role = Role.OPERATOR
    ) -> OperatorInDB:
        if not password:
            raise ValidationError("Password is required")
        if await self.repository.find_by_national_id(national_id) or await self.repository.find_by_email(email):
            raise ValidationError("National id or email already exists")

        operator = await self.repository.save(OperatorInDB(
            national_id=national_id,
            name=name,
            email=email,
            role=role,
            hashed_password=get_password_hash(password)
        ))
        logger.info("Created %s account %s", role.name.lower(), operator.id)
        return operator

    async def authenticate(self, email: str, password: str) -> OperatorInDB:
        account = await self.repository.find_by_email(email)
        if not account or not verify_password(password, account.hashed_password):
            logger.warning("Rejected login for %s", email)
            raise AuthenticationError("Incorrect email or password")
        if not account.active:
            logger.warning("Login attempt on inactive account %s", account.id)
            raise InactiveAccountError("Inactive user, contact an administrator")
        return account

    async def get_account(self, account_id: int) -> Optional[OperatorInDB]:
        """Any staff account, admins included"""
        return await self.repository.find_by_id(account_id)

    async def get_operator(self, operator_id: int) -> OperatorInDB:
        operator = await self.repository.find_by_id(operator_id)
        if not operator or operator.is_admin:
            raise NotFoundError(f"Operator {operator_id} not found")
        return operator

    async def get_all_operators(self) -> List[OperatorInDB]:
        return [o for o in await self.repository.find_all() if not o.is_admin]

    async def deactivate(self, operator_id: int) -> OperatorInDB:
        operator = await self.get_operator(operator_id)
        operator.deactivate()
        logger.info("Operator %s deactivated", operator_id)
        return await self.repository.update(operator)

    async def reactivate(self, operator_id: int) -> OperatorInDB:
        operator = await self.get_operator(operator_id)
        operator.reactivate()
        logger.info("Operator %s reactivated", operator_id)
        return await self.repository.update(operator)
