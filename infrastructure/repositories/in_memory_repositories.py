"""In-Memory Repository Implementations

Stored entities are copied on the way in and on the way out, so callers can
mutate what they get back without touching storage until they call update().
"""
import asyncio
import itertools
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AbstractSet, Dict, Iterable, List, Optional

from domain.auth import OperatorInDB
from domain.entities import Reservation, Room, RoomType, Person, Inquiry
from domain.enums import ReservationStatus
from domain.exceptions import PersistenceError
from domain.repositories import (
    ReservationRepository, RoomRepository, RoomTypeRepository,
    PersonRepository, InquiryRepository, OperatorRepository
)
from domain.value_objects import Money

logger = logging.getLogger(__name__)


def _room_type(type_id: int, slug: str, capacity: int, price: str, description: str) -> RoomType:
    return RoomType(
        id=type_id,
        slug=slug,
        label=RoomType.label_from_slug(slug),
        capacity=capacity,
        nightly_price=Money(amount=Decimal(price)),
        description=description
    )


DEFAULT_ROOM_TYPES: List[RoomType] = [
    _room_type(1, "parejas_estandar", 2, "100", "Standard room for two guests"),
    _room_type(2, "parejas_suit", 2, "200", "Suite for two guests with extra comfort"),
    _room_type(3, "cuadruple_estandar", 4, "200", "Standard room for four guests"),
    _room_type(4, "cuadruple_suit", 4, "300", "Suite for four guests with more space and amenities"),
    _room_type(5, "familiar_estandar", 6, "300", "Standard family room for up to six guests"),
    _room_type(6, "familiar_suit", 6, "400", "Family suite with space and comfort for six guests"),
]


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class _InMemoryStore:
    """Id-keyed storage shared by the repositories below"""

    entity_name = "Entity"

    def __init__(self):
        self._storage: Dict[int, object] = {}
        self._ids = itertools.count(1)

    def _insert(self, entity):
        if entity.id is None:
            entity.id = next(self._ids)
        self._storage[entity.id] = entity.model_copy(deep=True)
        logger.debug("Saved %s %s", self.entity_name, entity.id)
        return entity.model_copy(deep=True)

    def _get(self, entity_id: int):
        entity = self._storage.get(entity_id)
        return entity.model_copy(deep=True) if entity is not None else None

    def _replace(self, entity):
        if entity.id not in self._storage:
            raise PersistenceError(f"{self.entity_name} {entity.id} is not stored")
        self._storage[entity.id] = entity.model_copy(deep=True)
        return entity.model_copy(deep=True)

    def _select(self, predicate=None, newest_first: bool = False) -> List:
        entities: Iterable = self._storage.values()
        if predicate is not None:
            entities = [e for e in entities if predicate(e)]
        ordered = sorted(entities, key=lambda e: e.id, reverse=newest_first)
        return [e.model_copy(deep=True) for e in ordered]


class InMemoryReservationRepository(_InMemoryStore, ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    entity_name = "Reservation"

    def __init__(self):
        super().__init__()
        self._room_locks: Dict[int, asyncio.Lock] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        return self._insert(reservation)

    async def find_by_id(self, reservation_id: int) -> Optional[Reservation]:
        """Find reservation by ID"""
        return self._get(reservation_id)

    async def find_by_room(
        self,
        room_id: int,
        statuses: Optional[AbstractSet[ReservationStatus]] = None
    ) -> List[Reservation]:
        """Find reservations of a room"""
        return self._select(
            lambda r: r.room_id == room_id and (statuses is None or r.status in statuses)
        )

    async def find_by_status(self, statuses: AbstractSet[ReservationStatus]) -> List[Reservation]:
        return self._select(lambda r: r.status in statuses)

    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        return self._select(newest_first=True)

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        return self._replace(reservation)

    @asynccontextmanager
    async def room_lock(self, room_id: int):
        lock = self._room_locks.setdefault(room_id, asyncio.Lock())
        async with lock:
            yield


class InMemoryRoomRepository(_InMemoryStore, RoomRepository):
    """In-memory implementation of RoomRepository"""

    entity_name = "Room"

    async def save(self, room: Room) -> Room:
        return self._insert(room)

    async def find_by_id(self, room_id: int) -> Optional[Room]:
        return self._get(room_id)

    async def find_by_name(self, name: str) -> Optional[Room]:
        matches = self._select(lambda r: r.name == name)
        return matches[0] if matches else None

    async def find_by_type(self, room_type_id: int) -> List[Room]:
        return self._select(lambda r: r.room_type_id == room_type_id)

    async def find_all(self) -> List[Room]:
        return self._select()

    async def update(self, room: Room) -> Room:
        return self._replace(room)


class InMemoryRoomTypeRepository(RoomTypeRepository):
    """Fixed catalog held in memory"""

    def __init__(self, room_types: Optional[List[RoomType]] = None):
        catalog = DEFAULT_ROOM_TYPES if room_types is None else room_types
        self._storage: Dict[int, RoomType] = {t.id: t for t in catalog}

    async def find_by_id(self, room_type_id: int) -> Optional[RoomType]:
        return self._storage.get(room_type_id)

    async def find_all(self) -> List[RoomType]:
        return sorted(self._storage.values(), key=lambda t: t.id)


class InMemoryPersonRepository(_InMemoryStore, PersonRepository):
    """In-memory implementation of PersonRepository"""

    entity_name = "Person"

    def __init__(self):
        super().__init__()
        self._email_locks: Dict[str, asyncio.Lock] = {}

    async def save(self, person: Person) -> Person:
        """Insert person; emails are unique regardless of case"""
        existing = await self.find_by_email(person.email)
        if existing is not None and existing.id != person.id:
            raise PersistenceError(f"Email {person.email} is already stored for person {existing.id}")
        return self._insert(person)

    async def find_by_id(self, person_id: int) -> Optional[Person]:
        return self._get(person_id)

    async def find_by_email(self, email: str) -> Optional[Person]:
        wanted = _normalize_email(email)
        matches = self._select(lambda p: _normalize_email(p.email) == wanted)
        return matches[0] if matches else None

    async def find_all(self) -> List[Person]:
        return self._select(newest_first=True)

    async def update(self, person: Person) -> Person:
        return self._replace(person)

    @asynccontextmanager
    async def email_lock(self, email: str):
        lock = self._email_locks.setdefault(_normalize_email(email), asyncio.Lock())
        async with lock:
            yield


class InMemoryInquiryRepository(_InMemoryStore, InquiryRepository):
    """In-memory implementation of InquiryRepository"""

    entity_name = "Inquiry"

    async def save(self, inquiry: Inquiry) -> Inquiry:
        return self._insert(inquiry)

    async def find_by_id(self, inquiry_id: int) -> Optional[Inquiry]:
        return self._get(inquiry_id)

    async def find_all(self) -> List[Inquiry]:
        return self._select(newest_first=True)

    async def update(self, inquiry: Inquiry) -> Inquiry:
        return self._replace(inquiry)


class InMemoryOperatorRepository(_InMemoryStore, OperatorRepository):
    """In-memory implementation of OperatorRepository"""

    entity_name = "Operator"

    def __init__(self, seed: Optional[List[OperatorInDB]] = None):
        super().__init__()
        for operator in seed or []:
            self._insert(operator)

    async def save(self, operator: OperatorInDB) -> OperatorInDB:
        return self._insert(operator)

    async def find_by_id(self, operator_id: int) -> Optional[OperatorInDB]:
        return self._get(operator_id)

    async def find_by_email(self, email: str) -> Optional[OperatorInDB]:
        wanted = _normalize_email(email)
        matches = self._select(lambda o: _normalize_email(o.email) == wanted)
        return matches[0] if matches else None

    async def find_by_national_id(self, national_id: str) -> Optional[OperatorInDB]:
        matches = self._select(lambda o: o.national_id == national_id)
        return matches[0] if matches else None

    async def find_all(self) -> List[OperatorInDB]:
        return self._select()

    async def update(self, operator: OperatorInDB) -> OperatorInDB:
        return self._replace(operator)
