"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from domain.enums import ReservationStatus, ReservationSource, InquiryStatus
from domain.exceptions import InvalidTransitionError
from domain.status_machine import ensure_transition
from domain.value_objects import DateRange, Money, PersonInfo


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    id: Optional[int] = None

    # References to other aggregates
    person_id: int
    room_id: int

    # Value Objects
    date_range: DateRange

    # Enums/Status
    status: ReservationStatus = ReservationStatus.PENDING_VERIFICATION
    source: ReservationSource = ReservationSource.ONLINE

    notes: Optional[str] = None

    # Audit (None means booked online / untouched by staff)
    created_by: Optional[int] = None
    modified_by: Optional[int] = None

    # Metadata
    created_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHODS ====================
    @staticmethod
    def create_public(
        person_id: int,
        room_id: int,
        date_range: DateRange,
        notes: Optional[str] = None
    ) -> "Reservation":
        """Self-service booking, waiting for staff to verify the guest"""
        return Reservation(
            person_id=person_id,
            room_id=room_id,
            date_range=date_range,
            status=ReservationStatus.PENDING_VERIFICATION,
            source=ReservationSource.ONLINE,
            notes=notes
        )

    @staticmethod
    def create_by_staff(
        actor_id: int,
        person_id: int,
        room_id: int,
        date_range: DateRange,
        notes: Optional[str] = None
    ) -> "Reservation":
        """Booking entered at the desk, approved on creation"""
        return Reservation(
            person_id=person_id,
            room_id=room_id,
            date_range=date_range,
            status=ReservationStatus.APPROVED,
            source=ReservationSource.STAFF,
            notes=notes,
            created_by=actor_id,
            modified_by=actor_id
        )

    # ==================== STATE TRANSITION METHODS ====================
    def verify(self, actor_id: int) -> None:
        """Staff confirmed the guest's identity; payment is next"""
        self._transition(ReservationStatus.PENDING_PAYMENT, actor_id)

    def approve(self, actor_id: int) -> None:
        """Approve reservation. Overlap with other approved bookings is checked by the caller."""
        self._transition(ReservationStatus.APPROVED, actor_id)

    def reject(self, actor_id: int) -> None:
        self._transition(ReservationStatus.REJECTED, actor_id)

    def cancel(self, actor_id: int) -> None:
        self._transition(ReservationStatus.CANCELLED, actor_id)

    # ==================== QUERY METHODS ====================
    def is_booked_online(self) -> bool:
        return self.created_by is None

    def get_nights(self) -> int:
        """Get number of nights"""
        return self.date_range.nights()

    # ==================== PRIVATE METHODS ====================
    def _transition(self, target: ReservationStatus, actor_id: int) -> None:
        # Validate before touching any field so a refused change leaves no trace
        ensure_transition(self.status, target)

        self.status = target
        self.modified_by = actor_id
        self.modified_at = datetime.utcnow()
        self.version += 1


class RoomType(BaseModel):
    """Room type catalog entry"""
    id: int
    slug: str
    label: str
    capacity: int = Field(ge=1)
    nightly_price: Money
    description: str = ""

    class Config:
        from_attributes = True

    @staticmethod
    def label_from_slug(slug: str) -> str:
        """'parejas_suit' -> 'Parejas Suite'"""
        words = [w.capitalize() for w in slug.replace("_", " ").split()]
        return " ".join("Suite" if w == "Suit" else w for w in words)


class Room(BaseModel):
    """Room Aggregate Root Entity

    ``active`` is the open-for-business / soft-delete flag, ``available`` is
    the operator's manual block. Both false marks a deleted room.
    """

    id: Optional[int] = None
    name: str = Field(min_length=1)
    room_type_id: int
    active: bool = True
    available: bool = True
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True

    # ==================== COMPUTED PROPERTIES ====================
    @property
    def is_deleted(self) -> bool:
        return not self.active and not self.available

    @property
    def is_open_for_booking(self) -> bool:
        """Only active, unblocked rooms accept new bookings"""
        return self.active and self.available

    # ==================== MODIFICATION METHODS ====================
    def update_details(self, name: str, room_type_id: int, notes: Optional[str] = None) -> None:
        self._ensure_not_deleted()
        self.name = name
        self.room_type_id = room_type_id
        self.notes = notes
        self._touch()

    def update_notes(self, notes: Optional[str]) -> None:
        self.notes = notes
        self._touch()

    # ==================== STATE TRANSITION METHODS ====================
    def deactivate(self) -> None:
        self._ensure_not_deleted()
        if not self.active:
            raise InvalidTransitionError("Room is already inactive")
        if not self.available:
            raise InvalidTransitionError(
                "Unblock the room before deactivating it, or delete it instead"
            )
        self.active = False
        self._touch()

    def reactivate(self) -> None:
        self._ensure_not_deleted()
        if self.active:
            raise InvalidTransitionError("Room is already active")
        self.active = True
        self._touch()

    def block(self) -> None:
        self._ensure_not_deleted()
        if not self.available:
            raise InvalidTransitionError("Room is already blocked")
        if not self.active:
            raise InvalidTransitionError(
                "Reactivate the room before blocking it, or delete it instead"
            )
        self.available = False
        self._touch()

    def unblock(self) -> None:
        self._ensure_not_deleted()
        if self.available:
            raise InvalidTransitionError("Room is already available")
        self.available = True
        self._touch()

    def delete(self) -> None:
        """Retire the room for good; it stays visible for audits"""
        self._ensure_not_deleted()
        self.active = False
        self.available = False
        self._touch()

    # ==================== PRIVATE METHODS ====================
    def _ensure_not_deleted(self) -> None:
        if self.is_deleted:
            raise InvalidTransitionError("Room has been deleted")

    def _touch(self) -> None:
        self.modified_at = datetime.utcnow()


class Person(BaseModel):
    """Customer, identified by email"""
    id: Optional[int] = None
    name: str
    surname: str
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True

    @staticmethod
    def from_info(info: PersonInfo) -> "Person":
        return Person(
            name=info.name,
            surname=info.surname,
            email=info.email,
            phone=info.phone,
            location=info.location
        )

    def refresh(self, info: PersonInfo) -> None:
        """Overwrite contact details with the latest ones the guest gave us"""
        self.name = info.name
        self.surname = info.surname
        self.phone = info.phone
        self.location = info.location

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}"


class Inquiry(BaseModel):
    """Question left by a customer on the public site"""
    id: Optional[int] = None
    person_id: int
    text: str = Field(min_length=1)
    status: InquiryStatus = InquiryStatus.PENDING
    resolved_by: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @staticmethod
    def create(person_id: int, text: str) -> "Inquiry":
        return Inquiry(person_id=person_id, text=text)

    def resolve(self, actor_id: int) -> None:
        """Mark inquiry as answered. Irreversible."""
        if self.is_resolved():
            raise InvalidTransitionError("Inquiry is already resolved")

        self.status = InquiryStatus.RESOLVED
        self.resolved_by = actor_id
        self.resolved_at = datetime.utcnow()

    def is_resolved(self) -> bool:
        return self.status == InquiryStatus.RESOLVED
