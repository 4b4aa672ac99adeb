"""Domain Entities - Auth"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from domain.enums import Role
from domain.exceptions import InvalidTransitionError


class Operator(BaseModel):
    """Staff account (front-desk operator or administrator)"""
    id: Optional[int] = None
    national_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: Role = Role.OPERATOR
    active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True

    def deactivate(self) -> None:
        if not self.active:
            raise InvalidTransitionError("Operator is already inactive")
        self.active = False

    def reactivate(self) -> None:
        if self.active:
            raise InvalidTransitionError("Operator is already active")
        self.active = True

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class OperatorInDB(Operator):
    """Operator with hashed password for storage"""
    hashed_password: str


class AuthContext(BaseModel):
    """Verified caller identity handed to services.

    Built server-side from the stored operator record, never from a role
    claim sent by the client.
    """
    actor_id: int
    role: Role

    class Config:
        frozen = True

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
