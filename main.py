import logging
from fastapi import FastAPI, HTTPException, Depends
from datetime import date, timedelta
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Persons
    CreatePersonRequest, PersonResponse,
    # Reservations
    PublicBookingRequest, LandingBookingRequest, StaffBookingRequest,
    BookingCreatedResponse, ReservationResponse, TransitionResponse,
    RoomTypeAvailabilityResponse, DateRangeResponse,
    # Rooms
    CreateRoomRequest, UpdateRoomRequest, UpdateRoomNotesRequest,
    RoomResponse, RoomStatusResponse, RoomStatusSummaryResponse, RoomTypeResponse,
    # Inquiries
    CreateInquiryRequest, InquiryResponse,
    # Operators & Auth
    CreateOperatorRequest, OperatorResponse, Token
)

from api.dependencies import (
    get_reservation_service, get_room_service, get_person_service,
    get_inquiry_service, get_operator_service,
    get_current_active_operator, require_staff, require_admin
)
from application.services import (
    ReservationService, RoomService, PersonService, InquiryService, OperatorService
)
from config import settings
from domain.auth import AuthContext, OperatorInDB
from domain.enums import ReservationStatus, RoomStatus, InquiryStatus, Role
from domain.exceptions import (
    DomainError, ValidationError, NotFoundError, ConflictError, InvalidTransitionError,
    PersistenceError, AuthenticationError, InactiveAccountError
)
from domain.value_objects import DateRange
from infrastructure.security import create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Hotel Back-Office API",
    description="Rooms, reservations, inquiries and operator accounts for the front desk",
    version="1.0.0"
)

PUBLIC_FAILURE_MESSAGE = "We could not complete your request. Please try again later."

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {
        "values": [item.value for item in ReservationStatus],
        "description": "Reservation status values: pending_verification, pending_payment, approved, rejected, cancelled"
    }

@app.get("/api/enums/room-status", tags=["Enum Reference"])
async def get_room_statuses():
    """Get all RoomStatus enum values"""
    return {
        "values": [item.value for item in RoomStatus],
        "description": "Live room status values: Free, Occupied, Closed, Deleted"
    }

@app.get("/api/enums/inquiry-status", tags=["Enum Reference"])
async def get_inquiry_statuses():
    return {"values": [item.value for item in InquiryStatus]}

@app.get("/api/enums/role", tags=["Enum Reference"])
async def get_roles():
    """Get all Role enum values"""
    return {
        "values": {item.name: item.value for item in Role},
        "description": "Role values: OPERATOR=1, ADMIN=2"
    }

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: OperatorService = Depends(get_operator_service)
):
    """Log in with email (as username) and password"""
    try:
        operator = await service.authenticate(form_data.username, form_data.password)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=401,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InactiveAccountError as e:
        raise HTTPException(status_code=403, detail=e.message)

    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": str(operator.id), "role": operator.role.value},
        expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=OperatorResponse, tags=["Auth"])
async def read_users_me(current_operator: OperatorInDB = Depends(get_current_active_operator)):
    return _operator_to_response(current_operator)

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations/public", response_model=BookingCreatedResponse, status_code=201, tags=["Reservations"])
async def create_public_booking(
    request: PublicBookingRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Self-service booking for a specific room (no availability check)"""
    try:
        reservation = await service.create_public_booking(
            person_info=request.to_person_info(),
            room_id=request.room_id,
            check_in=request.check_in,
            check_out=request.check_out,
            notes=request.notes
        )
        return _booking_created(reservation, "Booking received, pending verification")
    except DomainError as e:
        raise _to_http_exception(e, public=True)

@app.post("/api/reservations/landing", response_model=BookingCreatedResponse, status_code=201, tags=["Reservations"])
async def create_landing_booking(
    request: LandingBookingRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Self-service booking by room type; the first free room is assigned"""
    try:
        reservation = await service.create_landing_booking(
            person_info=request.to_person_info(),
            room_type_id=request.room_type_id,
            check_in=request.check_in,
            check_out=request.check_out,
            notes=request.notes
        )
        return _booking_created(reservation, "Booking received, pending verification")
    except DomainError as e:
        raise _to_http_exception(e, public=True)

@app.get("/api/reservations/availability/{room_type_id}", response_model=RoomTypeAvailabilityResponse, tags=["Reservations"])
async def get_room_type_availability(
    room_type_id: int,
    service: ReservationService = Depends(get_reservation_service)
):
    """Approved stays of a room type, to paint occupied blocks on the public calendar"""
    try:
        room_type, ranges = await service.approved_ranges_for_room_type(room_type_id)
    except DomainError as e:
        raise _to_http_exception(e, public=True)
    return RoomTypeAvailabilityResponse(
        room_type_id=room_type.id,
        room_type_name=room_type.label,
        reservations=[DateRangeResponse(check_in=d.check_in, check_out=d.check_out) for d in ranges]
    )

@app.post("/api/reservations", response_model=BookingCreatedResponse, status_code=201, tags=["Reservations"])
async def create_staff_booking(
    request: StaffBookingRequest,
    service: ReservationService = Depends(get_reservation_service),
    auth: AuthContext = Depends(require_staff)
):
    """Create an approved booking from the front desk"""
    try:
        reservation = await service.create_staff_booking(
            actor_id=auth.actor_id,
            room_id=request.room_id,
            check_in=request.check_in,
            check_out=request.check_out,
            notes=request.notes,
            person_id=request.person_id,
            person_info=request.person.to_person_info() if request.person else None
        )
        return _booking_created(reservation, "Booking created and approved")
    except DomainError as e:
        raise _to_http_exception(e)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_all_reservations(
    service: ReservationService = Depends(get_reservation_service),
    auth: AuthContext = Depends(require_staff)
):
    """Get all reservations, newest first"""
    reservations = await service.get_all_reservations()
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    auth: AuthContext = Depends(require_staff)
):
    """Get reservation by ID"""
    try:
        reservation = await service.get_reservation(reservation_id)
    except DomainError as e:
        raise _to_http_exception(e)
    return _reservation_to_response(reservation)

@app.patch("/api/reservations/{reservation_id}/verify", response_model=TransitionResponse, tags=["Reservations"])
async def verify_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    auth: AuthContext = Depends(require_staff)
):
    """Guest identity confirmed; reservation waits for payment"""
    try:
        reservation = await service.verify(auth.actor_id, reservation_id)
        return _transition_response(reservation, "Reservation verified")
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/reservations/{reservation_id}/approve", response_model=TransitionResponse, tags=["Reservations"])
async def approve_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    auth: AuthContext = Depends(require_staff)
):
    """Approve reservation"""
    try:
        reservation = await service.approve(auth.actor_id, reservation_id)
        return _transition_response(reservation, "Reservation approved")
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/reservations/{reservation_id}/reject", response_model=TransitionResponse, tags=["Reservations"])
async def reject_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    auth: AuthContext = Depends(require_staff)
):
    """Reject reservation"""
    try:
        reservation = await service.reject(auth.actor_id, reservation_id)
        return _transition_response(reservation, "Reservation rejected")
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/reservations/{reservation_id}/cancel", response_model=TransitionResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    auth: AuthContext = Depends(require_staff)
):
    """Cancel reservation"""
    try:
        reservation = await service.cancel(auth.actor_id, reservation_id)
        return _transition_response(reservation, "Reservation cancelled")
    except DomainError as e:
        raise _to_http_exception(e)

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@app.get("/api/room-types", response_model=List[RoomTypeResponse], tags=["Rooms"])
async def get_room_types(service: RoomService = Depends(get_room_service)):
    """Room type catalog"""
    room_types = await service.get_all_room_types()
    return [_room_type_to_response(t) for t in room_types]

@app.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def create_room(
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    """Create room"""
    try:
        room = await service.create_room(
            name=request.name,
            room_type_id=request.room_type_id,
            notes=request.notes,
            active=request.active,
            available=request.available
        )
        return _room_to_response(room)
    except DomainError as e:
        raise _to_http_exception(e)

@app.get("/api/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def get_all_rooms(
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    rooms = await service.get_all_rooms()
    return [_room_to_response(r) for r in rooms]

@app.get("/api/rooms/status", response_model=List[RoomStatusResponse], tags=["Rooms"])
async def get_rooms_live_status(
    as_of: Optional[date] = None,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    """Live status of every room (defaults to today)"""
    as_of = as_of or date.today()
    statuses = await service.live_statuses(as_of)
    return [
        RoomStatusResponse(room_id=room.id, name=room.name, status=status.value, as_of=as_of)
        for room, status in statuses
    ]

@app.get("/api/rooms/status/summary", response_model=RoomStatusSummaryResponse, tags=["Rooms"])
async def get_rooms_status_summary(
    as_of: Optional[date] = None,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    """Room count per live status, for the dashboards"""
    as_of = as_of or date.today()
    summary = await service.status_summary(as_of)
    return RoomStatusSummaryResponse(
        as_of=as_of,
        counts={status.value: count for status, count in summary.items()}
    )

@app.get("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(
    room_id: int,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    try:
        room = await service.get_room(room_id)
    except DomainError as e:
        raise _to_http_exception(e)
    return _room_to_response(room)

@app.get("/api/rooms/{room_id}/status", response_model=RoomStatusResponse, tags=["Rooms"])
async def get_room_live_status(
    room_id: int,
    as_of: Optional[date] = None,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    """Live status of one room (defaults to today)"""
    as_of = as_of or date.today()
    try:
        room, status = await service.live_status(room_id, as_of)
    except DomainError as e:
        raise _to_http_exception(e)
    return RoomStatusResponse(room_id=room.id, name=room.name, status=status.value, as_of=as_of)

@app.get("/api/rooms/{room_id}/reservations", response_model=List[ReservationResponse], tags=["Rooms"])
async def get_room_reservations(
    room_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
    service: ReservationService = Depends(get_reservation_service),
    auth: AuthContext = Depends(require_staff)
):
    """Reservations of a room; with start/end (end inclusive) only those overlapping that range"""
    try:
        if start is None and end is None:
            reservations = await service.list_for_room(room_id)
        elif start is None or end is None:
            raise ValidationError("Both start and end are required to filter by dates")
        else:
            try:
                selection = DateRange.from_inclusive(start, end)
            except ValueError:
                raise ValidationError("End date must not be before start date")
            reservations = await service.list_overlapping(room_id, selection)
    except DomainError as e:
        raise _to_http_exception(e)
    return [_reservation_to_response(r) for r in reservations]

@app.put("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: int,
    request: UpdateRoomRequest,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    """Update room name, type and notes"""
    try:
        room = await service.update_room(room_id, request.name, request.room_type_id, request.notes)
        return _room_to_response(room)
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/rooms/{room_id}/notes", response_model=RoomResponse, tags=["Rooms"])
async def update_room_notes(
    room_id: int,
    request: UpdateRoomNotesRequest,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    try:
        room = await service.update_notes(room_id, request.notes)
        return _room_to_response(room)
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/rooms/{room_id}/deactivate", response_model=RoomResponse, tags=["Rooms"])
async def deactivate_room(
    room_id: int,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    try:
        return _room_to_response(await service.deactivate(room_id))
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/rooms/{room_id}/reactivate", response_model=RoomResponse, tags=["Rooms"])
async def reactivate_room(
    room_id: int,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    try:
        return _room_to_response(await service.reactivate(room_id))
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/rooms/{room_id}/block", response_model=RoomResponse, tags=["Rooms"])
async def block_room(
    room_id: int,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    """Close the room to new bookings"""
    try:
        return _room_to_response(await service.block(room_id))
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/rooms/{room_id}/unblock", response_model=RoomResponse, tags=["Rooms"])
async def unblock_room(
    room_id: int,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_staff)
):
    try:
        return _room_to_response(await service.unblock(room_id))
    except DomainError as e:
        raise _to_http_exception(e)

@app.delete("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def delete_room(
    room_id: int,
    service: RoomService = Depends(get_room_service),
    auth: AuthContext = Depends(require_admin)
):
    """Retire a room; it stays listed with status Deleted"""
    try:
        return _room_to_response(await service.delete(room_id))
    except DomainError as e:
        raise _to_http_exception(e)

# ============================================================================
# PERSON ENDPOINTS
# ============================================================================

@app.post("/api/persons", response_model=PersonResponse, status_code=201, tags=["Persons"])
async def create_person(
    request: CreatePersonRequest,
    service: PersonService = Depends(get_person_service)
):
    try:
        person = await service.create_person(request.to_person_info())
        return _person_to_response(person)
    except DomainError as e:
        raise _to_http_exception(e, public=True)

@app.get("/api/persons", response_model=List[PersonResponse], tags=["Persons"])
async def get_all_persons(
    service: PersonService = Depends(get_person_service),
    auth: AuthContext = Depends(require_staff)
):
    persons = await service.get_all_persons()
    return [_person_to_response(p) for p in persons]

@app.get("/api/persons/{person_id}", response_model=PersonResponse, tags=["Persons"])
async def get_person(
    person_id: int,
    service: PersonService = Depends(get_person_service),
    auth: AuthContext = Depends(require_staff)
):
    try:
        person = await service.get_person(person_id)
    except DomainError as e:
        raise _to_http_exception(e)
    return _person_to_response(person)

# ============================================================================
# INQUIRY ENDPOINTS
# ============================================================================

@app.post("/api/inquiries", response_model=InquiryResponse, status_code=201, tags=["Inquiries"])
async def create_inquiry(
    request: CreateInquiryRequest,
    service: InquiryService = Depends(get_inquiry_service)
):
    """Public question from the landing page"""
    try:
        inquiry = await service.create_inquiry(request.to_person_info(), request.text)
        return _inquiry_to_response(inquiry)
    except DomainError as e:
        raise _to_http_exception(e, public=True)

@app.get("/api/inquiries", response_model=List[InquiryResponse], tags=["Inquiries"])
async def get_all_inquiries(
    service: InquiryService = Depends(get_inquiry_service),
    auth: AuthContext = Depends(require_staff)
):
    inquiries = await service.get_all_inquiries()
    return [_inquiry_to_response(i) for i in inquiries]

@app.patch("/api/inquiries/{inquiry_id}/resolve", response_model=InquiryResponse, tags=["Inquiries"])
async def resolve_inquiry(
    inquiry_id: int,
    service: InquiryService = Depends(get_inquiry_service),
    auth: AuthContext = Depends(require_staff)
):
    """Mark inquiry as answered"""
    try:
        inquiry = await service.resolve(auth.actor_id, inquiry_id)
        return _inquiry_to_response(inquiry)
    except DomainError as e:
        raise _to_http_exception(e)

# ============================================================================
# OPERATOR ENDPOINTS (ADMIN ONLY)
# ============================================================================

@app.post("/api/operators", response_model=OperatorResponse, status_code=201, tags=["Operators"])
async def create_operator(
    request: CreateOperatorRequest,
    service: OperatorService = Depends(get_operator_service),
    auth: AuthContext = Depends(require_admin)
):
    try:
        operator = await service.create_operator(
            national_id=request.national_id,
            name=request.name,
            email=request.email,
            password=request.password
        )
        return _operator_to_response(operator)
    except DomainError as e:
        raise _to_http_exception(e)

@app.get("/api/operators", response_model=List[OperatorResponse], tags=["Operators"])
async def get_all_operators(
    service: OperatorService = Depends(get_operator_service),
    auth: AuthContext = Depends(require_admin)
):
    operators = await service.get_all_operators()
    return [_operator_to_response(o) for o in operators]

@app.get("/api/operators/{operator_id}", response_model=OperatorResponse, tags=["Operators"])
async def get_operator(
    operator_id: int,
    service: OperatorService = Depends(get_operator_service),
    auth: AuthContext = Depends(require_admin)
):
    try:
        operator = await service.get_operator(operator_id)
    except DomainError as e:
        raise _to_http_exception(e)
    return _operator_to_response(operator)

@app.delete("/api/operators/{operator_id}", response_model=OperatorResponse, tags=["Operators"])
async def deactivate_operator(
    operator_id: int,
    service: OperatorService = Depends(get_operator_service),
    auth: AuthContext = Depends(require_admin)
):
    """Soft-delete: the account is deactivated, never removed"""
    try:
        return _operator_to_response(await service.deactivate(operator_id))
    except DomainError as e:
        raise _to_http_exception(e)

@app.patch("/api/operators/{operator_id}/reactivate", response_model=OperatorResponse, tags=["Operators"])
async def reactivate_operator(
    operator_id: int,
    service: OperatorService = Depends(get_operator_service),
    auth: AuthContext = Depends(require_admin)
):
    try:
        return _operator_to_response(await service.reactivate(operator_id))
    except DomainError as e:
        raise _to_http_exception(e)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

# Order matters: subclasses before their parents
_ERROR_STATUS_CODES = [
    (InvalidTransitionError, 400),
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AuthenticationError, 401),
    (InactiveAccountError, 403),
    (PersistenceError, 500),
]

def _to_http_exception(error: DomainError, public: bool = False) -> HTTPException:
    """Map a domain error to its HTTP equivalent. Call from inside the except block."""
    status_code = 500
    for error_type, code in _ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            status_code = code
            break

    if status_code == 500:
        logger.exception("Request failed: %s", error.message)
        detail = PUBLIC_FAILURE_MESSAGE if public else error.message
        return HTTPException(status_code=500, detail=detail)
    return HTTPException(status_code=status_code, detail=error.message)

def _booking_created(reservation, message: str) -> BookingCreatedResponse:
    return BookingCreatedResponse(
        reservation_id=reservation.id,
        person_id=reservation.person_id,
        room_id=reservation.room_id,
        status=reservation.status.value,
        message=message
    )

def _transition_response(reservation, message: str) -> TransitionResponse:
    return TransitionResponse(
        reservation_id=reservation.id,
        status=reservation.status.value,
        message=message
    )

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.id,
        person_id=reservation.person_id,
        room_id=reservation.room_id,
        check_in=reservation.date_range.check_in,
        check_out=reservation.date_range.check_out,
        nights=reservation.get_nights(),
        status=reservation.status.value,
        source=reservation.source.value,
        notes=reservation.notes,
        booked_online=reservation.is_booked_online(),
        created_by=reservation.created_by,
        modified_by=reservation.modified_by,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

def _room_to_response(room) -> RoomResponse:
    return RoomResponse(
        room_id=room.id,
        name=room.name,
        room_type_id=room.room_type_id,
        active=room.active,
        available=room.available,
        notes=room.notes
    )

def _room_type_to_response(room_type) -> RoomTypeResponse:
    return RoomTypeResponse(
        room_type_id=room_type.id,
        slug=room_type.slug,
        label=room_type.label,
        capacity=room_type.capacity,
        nightly_price=room_type.nightly_price.amount,
        currency=room_type.nightly_price.currency,
        description=room_type.description
    )

def _person_to_response(person) -> PersonResponse:
    return PersonResponse(
        person_id=person.id,
        name=person.name,
        surname=person.surname,
        email=person.email,
        phone=person.phone,
        location=person.location
    )

def _inquiry_to_response(inquiry) -> InquiryResponse:
    return InquiryResponse(
        inquiry_id=inquiry.id,
        person_id=inquiry.person_id,
        text=inquiry.text,
        status=inquiry.status.value,
        resolved_by=inquiry.resolved_by,
        created_at=inquiry.created_at,
        resolved_at=inquiry.resolved_at
    )

def _operator_to_response(operator) -> OperatorResponse:
    return OperatorResponse(
        operator_id=operator.id,
        national_id=operator.national_id,
        name=operator.name,
        email=operator.email,
        role=operator.role,
        active=operator.active
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
