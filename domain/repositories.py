"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import AbstractSet, AsyncContextManager, Optional, List

from domain.auth import OperatorInDB
from domain.entities import Reservation, Room, RoomType, Person, Inquiry
from domain.enums import ReservationStatus


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Insert reservation, assigning its id"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: int) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_room(
        self,
        room_id: int,
        statuses: Optional[AbstractSet[ReservationStatus]] = None
    ) -> List[Reservation]:
        """Find reservations of a room, optionally restricted to some statuses"""
        pass

    @abstractmethod
    async def find_by_status(self, statuses: AbstractSet[ReservationStatus]) -> List[Reservation]:
        """Find reservations in any of the given statuses"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations, newest first"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass

    @abstractmethod
    def room_lock(self, room_id: int) -> AsyncContextManager[None]:
        """Exclusive section for one room.

        Availability check and the write that depends on it must both run
        inside this block.
        """
        pass


class RoomRepository(ABC):
    """Repository interface for Room Aggregate"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        pass

    @abstractmethod
    async def find_by_id(self, room_id: int) -> Optional[Room]:
        pass

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[Room]:
        pass

    @abstractmethod
    async def find_by_type(self, room_type_id: int) -> List[Room]:
        """Find rooms of a type, ordered by id"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Room]:
        pass

    @abstractmethod
    async def update(self, room: Room) -> Room:
        pass


class RoomTypeRepository(ABC):
    """Read-only room type catalog"""

    @abstractmethod
    async def find_by_id(self, room_type_id: int) -> Optional[RoomType]:
        pass

    @abstractmethod
    async def find_all(self) -> List[RoomType]:
        pass


class PersonRepository(ABC):
    """Repository interface for customers"""

    @abstractmethod
    async def save(self, person: Person) -> Person:
        pass

    @abstractmethod
    async def find_by_id(self, person_id: int) -> Optional[Person]:
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Person]:
        """Find person by email, case-insensitively"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Person]:
        pass

    @abstractmethod
    async def update(self, person: Person) -> Person:
        pass

    @abstractmethod
    def email_lock(self, email: str) -> AsyncContextManager[None]:
        """Exclusive section for one email, case-insensitive"""
        pass


class InquiryRepository(ABC):
    """Repository interface for customer inquiries"""

    @abstractmethod
    async def save(self, inquiry: Inquiry) -> Inquiry:
        pass

    @abstractmethod
    async def find_by_id(self, inquiry_id: int) -> Optional[Inquiry]:
        pass

    @abstractmethod
    async def find_all(self) -> List[Inquiry]:
        """Find all inquiries, newest first"""
        pass

    @abstractmethod
    async def update(self, inquiry: Inquiry) -> Inquiry:
        pass


class OperatorRepository(ABC):
    """Repository interface for staff accounts"""

    @abstractmethod
    async def save(self, operator: OperatorInDB) -> OperatorInDB:
        pass

    @abstractmethod
    async def find_by_id(self, operator_id: int) -> Optional[OperatorInDB]:
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[OperatorInDB]:
        pass

    @abstractmethod
    async def find_by_national_id(self, national_id: str) -> Optional[OperatorInDB]:
        pass

    @abstractmethod
    async def find_all(self) -> List[OperatorInDB]:
        pass

    @abstractmethod
    async def update(self, operator: OperatorInDB) -> OperatorInDB:
        pass
