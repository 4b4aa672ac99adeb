"""API Dependencies - Wiring and Authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from application.services import (
    ReservationService, RoomService, PersonService, InquiryService, OperatorService
)
from domain.auth import AuthContext, OperatorInDB
from domain.enums import Role
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryRoomRepository, InMemoryRoomTypeRepository,
    InMemoryPersonRepository, InMemoryInquiryRepository, InMemoryOperatorRepository
)
from infrastructure.security import decode_access_token, get_password_hash
from api.schemas import TokenData
from config import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def _bootstrap_admin() -> OperatorInDB:
    """Administrator account configured through the environment"""
    return OperatorInDB(
        national_id=settings.ADMIN_NATIONAL_ID,
        name=settings.ADMIN_NAME,
        email=settings.ADMIN_EMAIL,
        role=Role.ADMIN,
        hashed_password=get_password_hash(settings.ADMIN_PASSWORD)
    )


# Initialize repositories
reservation_repo = InMemoryReservationRepository()
room_repo = InMemoryRoomRepository()
room_type_repo = InMemoryRoomTypeRepository()
person_repo = InMemoryPersonRepository()
inquiry_repo = InMemoryInquiryRepository()
operator_repo = InMemoryOperatorRepository(seed=[_bootstrap_admin()])


def get_person_service() -> PersonService:
    return PersonService(person_repo)

def get_reservation_service() -> ReservationService:
    return ReservationService(reservation_repo, room_repo, get_person_service(), room_type_repo)

def get_room_service() -> RoomService:
    return RoomService(room_repo, room_type_repo, reservation_repo)

def get_inquiry_service() -> InquiryService:
    return InquiryService(inquiry_repo, get_person_service())

def get_operator_service() -> OperatorService:
    return OperatorService(operator_repo)


async def get_current_operator(
    token: str = Depends(oauth2_scheme),
    operators: OperatorService = Depends(get_operator_service)
) -> OperatorInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        subject = payload.get("sub")
        if subject is None:
            raise credentials_exception
        token_data = TokenData(operator_id=int(subject))
    except (JWTError, ValueError):
        raise credentials_exception

    # Role and active flag always come from storage, never from the token
    operator = await operators.get_account(token_data.operator_id)
    if operator is None:
        raise credentials_exception
    return operator

async def get_current_active_operator(
    current_operator: OperatorInDB = Depends(get_current_operator)
) -> OperatorInDB:
    if not current_operator.active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_operator


def require_roles(*roles: Role):
    """Dependency factory: the caller's stored role must be one of ``roles``"""
    async def dependency(
        current_operator: OperatorInDB = Depends(get_current_active_operator)
    ) -> AuthContext:
        context = AuthContext(actor_id=current_operator.id, role=current_operator.role)
        if not context.has_role(*roles):
            raise HTTPException(status_code=403, detail="Not authorized")
        return context
    return dependency


require_staff = require_roles(Role.OPERATOR, Role.ADMIN)
require_admin = require_roles(Role.ADMIN)
