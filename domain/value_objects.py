"""Domain Value Objects"""
from pydantic import BaseModel, Field, validator
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    """Half-open overlap of [start_a, end_a) and [start_b, end_b).

    Touching boundaries (end_a == start_b) do not overlap: a guest checking
    out on the morning another guest checks in is not a conflict.
    """
    return start_a < end_b and start_b < end_a


class DateRange(BaseModel):
    """Value Object for a stay, check-out exclusive"""
    check_in: date
    check_out: date

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out must be after check-in')
        return v

    @classmethod
    def from_inclusive(cls, start: date, last_night: date) -> "DateRange":
        """Build a range from a UI selection whose end date is inclusive"""
        return cls(check_in=start, check_out=last_night + timedelta(days=1))

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        return overlaps(self.check_in, self.check_out, other.check_in, other.check_out)

    def contains(self, day: date) -> bool:
        """True if the guest sleeps in the room on the night of ``day``"""
        return overlaps(self.check_in, self.check_out, day, day + timedelta(days=1))

    class Config:
        frozen = True


class Money(BaseModel):
    """Value Object for monetary amounts"""
    amount: Decimal = Field(gt=0)
    currency: str = "USD"

    class Config:
        frozen = True


class PersonInfo(BaseModel):
    """Contact details supplied with a booking or an inquiry"""
    name: str = Field(min_length=1)
    surname: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: Optional[str] = None
    location: Optional[str] = None

    class Config:
        frozen = True
