"""
User Models

Database model and payloads for users, plus the acting identity passed to the
lifecycle manager.
"""

from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator

from tms_api.workflow.enums import UserRole


class User(BaseModel):
    """User database model. The stored credential is never part of this model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    employee_number: str
    name: str
    username: str
    role: UserRole
    pd_id: Optional[str] = None  # pinned Recommender, requesters only


class Actor(BaseModel):
    """The identity performing an operation."""

    model_config = ConfigDict(frozen=True)

    id: str
    employee_number: str
    name: str
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, employee_number=user.employee_number, name=user.name, role=user.role)


class UserPayload(BaseModel):
    """Fields accepted when creating or updating a user."""

    model_config = ConfigDict(extra="forbid")

    employee_number: str = Field(min_length=1)
    name: str = Field(min_length=2)
    username: str = Field(min_length=3)
    password: Optional[str] = Field(default=None, min_length=3)  # required on create, optional on update
    role: UserRole
    pd_id: Optional[str] = None

    @field_validator("employee_number", "name", "username")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def check_pinning(self) -> "UserPayload":
        if self.role == UserRole.REQUESTER and not self.pd_id:
            raise ValueError("A requester must be pinned to a recommender (pd_id)")
        if self.role != UserRole.REQUESTER:
            self.pd_id = None
        return self
