"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    PENDING_PAYMENT = "pending_payment"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ReservationSource(str, Enum):
    ONLINE = "ONLINE"
    STAFF = "STAFF"


class RoomStatus(str, Enum):
    FREE = "Free"
    OCCUPIED = "Occupied"
    CLOSED = "Closed"
    DELETED = "Deleted"


class InquiryStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class Role(int, Enum):
    OPERATOR = 1
    ADMIN = 2
