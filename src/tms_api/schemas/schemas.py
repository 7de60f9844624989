####################################
# --- Request/response schemas --- #
####################################

from datetime import datetime
from typing import Dict
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from tms_api.workflow.enums import RequestStatus
from tms_api.workflow.models.audit import AuditEntry
from tms_api.workflow.models.fleet import Driver
from tms_api.workflow.models.fleet import Vehicle
from tms_api.workflow.models.request import TransportRequest
from tms_api.workflow.models.user import User
from tms_api.workflow.views import DashboardSummary


class MessageResponse(BaseModel):
    """Response carrying only a message."""

    Message: str


# ════════════════════════════════════════════════════════════════════════════
# Auth
# ════════════════════════════════════════════════════════════════════════════


class LoginRequest(BaseModel):
    """Credentials submitted to the login endpoint."""

    model_config = ConfigDict(extra="forbid")

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username cannot be blank")
        return v


class ChangePasswordRequest(BaseModel):
    """Body of the change-password endpoint."""

    model_config = ConfigDict(extra="forbid")

    old_password: str
    new_password: str


class UserResponse(BaseModel):
    """Response model for a single user."""

    Message: str
    User: User


class UsersResponse(BaseModel):
    """Response model for listing users."""

    Message: str
    Count: int
    Users: List[User]


class PasswordResetResponse(BaseModel):
    """Response model for an administrative password reset."""

    Message: str
    UserId: str
    NewPassword: str


# ════════════════════════════════════════════════════════════════════════════
# Requests
# ════════════════════════════════════════════════════════════════════════════


class CommentRequest(BaseModel):
    """Body for transitions that only take a comment."""

    model_config = ConfigDict(extra="forbid")

    comment: Optional[str] = None


class ForwardRequest(BaseModel):
    """Body of the forward transition."""

    model_config = ConfigDict(extra="forbid")

    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    comment: Optional[str] = None


class ApproveRequest(BaseModel):
    """Body of the approve transition. Omitted driver or vehicle keeps the forwarded one."""

    model_config = ConfigDict(extra="forbid")

    comment: Optional[str] = None
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None


class RequestResponse(BaseModel):
    """Response model for a single transport request."""

    Message: str
    Request: TransportRequest


class RequestsResponse(BaseModel):
    """Response model for listing transport requests."""

    Message: str
    Count: int
    Requests: List[TransportRequest]


class AuditResponse(BaseModel):
    """Response model for a request's audit trail."""

    Message: str
    RequestId: int
    Entries: List[AuditEntry]


class TransitionsResponse(BaseModel):
    """Transitions the acting user can apply to a request."""

    Message: str
    RequestId: int
    Status: RequestStatus
    Transitions: List[str]


class DashboardResponse(BaseModel):
    """Response model for the dashboard."""

    Message: str
    Year: int
    Summary: DashboardSummary


class ReportResponse(BaseModel):
    """Response model for a filtered report."""

    Message: str
    GeneratedAt: datetime
    Count: int
    Requests: List[TransportRequest]
    StatusCounts: Dict[str, int]


# ════════════════════════════════════════════════════════════════════════════
# Fleet
# ════════════════════════════════════════════════════════════════════════════


class DriverResponse(BaseModel):
    """Response model for a single driver."""

    Message: str
    Driver: Driver


class DriversResponse(BaseModel):
    """Response model for listing drivers."""

    Message: str
    Count: int
    Drivers: List[Driver]


class VehicleResponse(BaseModel):
    """Response model for a single vehicle."""

    Message: str
    Vehicle: Vehicle


class VehiclesResponse(BaseModel):
    """Response model for listing vehicles."""

    Message: str
    Count: int
    Vehicles: List[Vehicle]
