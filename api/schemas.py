"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from domain.enums import Role
from domain.value_objects import PersonInfo


# ============================================================================
# PERSON SCHEMAS
# ============================================================================

class PersonFields(PersonInfo):
    """Contact fields embedded in booking and inquiry requests"""

    def to_person_info(self) -> PersonInfo:
        return PersonInfo(**self.model_dump(include=set(PersonInfo.model_fields)))


class CreatePersonRequest(PersonFields):
    """Create person request DTO"""


class PersonResponse(BaseModel):
    """Person response DTO"""
    person_id: int
    name: str
    surname: str
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class PublicBookingRequest(PersonFields):
    """Self-service booking for a given room"""
    room_id: int
    check_in: date
    check_out: date
    notes: Optional[str] = None


class LandingBookingRequest(PersonFields):
    """Self-service booking by room type, room assigned by the server"""
    room_type_id: int
    check_in: date
    check_out: date
    notes: Optional[str] = None


class StaffBookingRequest(BaseModel):
    """Desk booking: either an existing person_id or the person's details"""
    room_id: int
    check_in: date
    check_out: date
    notes: Optional[str] = None
    person_id: Optional[int] = None
    person: Optional[PersonFields] = None


class BookingCreatedResponse(BaseModel):
    """Booking created response DTO"""
    reservation_id: int
    person_id: int
    room_id: int
    status: str
    message: str


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: int
    person_id: int
    room_id: int
    check_in: date
    check_out: date
    nights: int
    status: str
    source: str
    notes: Optional[str] = None
    booked_online: bool
    created_by: Optional[int] = None
    modified_by: Optional[int] = None
    created_at: datetime
    modified_at: datetime
    version: int


class TransitionResponse(BaseModel):
    """Status change response DTO"""
    ok: bool = True
    reservation_id: int
    status: str
    message: str


class DateRangeResponse(BaseModel):
    check_in: date
    check_out: date


class RoomTypeAvailabilityResponse(BaseModel):
    """Approved stays for a room type, check-out exclusive"""
    room_type_id: int
    room_type_name: str
    reservations: List[DateRangeResponse]


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    name: str = Field(min_length=1)
    room_type_id: int
    notes: Optional[str] = None
    active: bool = True
    available: bool = True


class UpdateRoomRequest(BaseModel):
    """Update room request DTO"""
    name: str = Field(min_length=1)
    room_type_id: int
    notes: Optional[str] = None


class UpdateRoomNotesRequest(BaseModel):
    notes: Optional[str] = None


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: int
    name: str
    room_type_id: int
    active: bool
    available: bool
    notes: Optional[str] = None


class RoomStatusResponse(BaseModel):
    """Live room status DTO"""
    room_id: int
    name: str
    status: str
    as_of: date


class RoomStatusSummaryResponse(BaseModel):
    as_of: date
    counts: Dict[str, int]


class RoomTypeResponse(BaseModel):
    """Room type response DTO"""
    room_type_id: int
    slug: str
    label: str
    capacity: int
    nightly_price: Decimal
    currency: str
    description: str


# ============================================================================
# INQUIRY SCHEMAS
# ============================================================================

class CreateInquiryRequest(PersonFields):
    """Create inquiry request DTO"""
    text: str = Field(min_length=1)


class InquiryResponse(BaseModel):
    """Inquiry response DTO"""
    inquiry_id: int
    person_id: int
    text: str
    status: str
    resolved_by: Optional[int] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None


# ============================================================================
# OPERATOR & AUTH SCHEMAS
# ============================================================================

class CreateOperatorRequest(BaseModel):
    """Create operator request DTO"""
    national_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class OperatorResponse(BaseModel):
    """Operator response DTO, never carries the password hash"""
    operator_id: int
    national_id: str
    name: str
    email: str
    role: Role
    active: bool


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    operator_id: Optional[int] = None
