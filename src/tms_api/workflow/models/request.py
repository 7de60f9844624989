"""
Request Models

Creation payload and database model for transport requests.
"""

import json
from datetime import datetime
from datetime import timezone
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator

from tms_api.workflow.enums import RequestReason
from tms_api.workflow.enums import RequestStatus
from tms_api.workflow.enums import RequisitionType

# Fields each reason requires on creation
REASON_REQUIRED_FIELDS = {
    RequestReason.MEETING: ("letter_id", "meeting_agenda", "venue"),
    RequestReason.PURCHASE: ("purchase_details", "purchase_items", "purchase_case_number", "subject"),
    RequestReason.OTHER: ("other_purpose",),
}


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Official(BaseModel):
    """An official accompanying the trip."""

    name: str = Field(min_length=1)
    employee_number: str = Field(min_length=1)

    @field_validator("name", "employee_number")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class NewTransportRequest(BaseModel):
    """Payload for creating a request. Status and timestamps are assigned by the system."""

    model_config = ConfigDict(extra="forbid")

    employee_number: str = Field(min_length=1)
    name: Optional[str] = None  # defaults to the requester's display name
    requisition_type: RequisitionType
    request_reason: RequestReason
    departing_location: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    from_time: datetime
    to_time: datetime
    officials: List[Official] = Field(default_factory=list)

    # For Meeting
    letter_id: Optional[str] = None
    meeting_agenda: Optional[str] = None
    venue: Optional[str] = None

    # For Purchase
    purchase_details: Optional[str] = None
    purchase_items: Optional[str] = None
    purchase_case_number: Optional[str] = None
    subject: Optional[str] = None

    # Other
    other_purpose: Optional[str] = None

    @field_validator("employee_number", "departing_location", "destination")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("from_time", "to_time")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @model_validator(mode="after")
    def check_window_and_reason(self) -> "NewTransportRequest":
        """Validate the time window and the reason-specific fields."""
        if self.to_time <= self.from_time:
            raise ValueError("to_time must be after from_time")

        missing = [
            field for field in REASON_REQUIRED_FIELDS[self.request_reason] if not (getattr(self, field) or "").strip()
        ]
        if missing:
            raise ValueError(f"{self.request_reason.value} requires: {', '.join(missing)}")
        return self

    def reason_fields(self) -> dict:
        """Return only the sub-fields that belong to the selected reason."""
        return {field: getattr(self, field) for field in REASON_REQUIRED_FIELDS[self.request_reason]}


class TransportRequest(BaseModel):
    """Transport request database model."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_number: str
    name: str
    requisition_type: RequisitionType
    request_reason: RequestReason
    departing_location: str
    destination: str
    from_time: datetime
    to_time: datetime
    status: RequestStatus
    request_generated_date: datetime
    officials: List[Official] = Field(default_factory=list)
    pd_id: Optional[str] = None

    # Assignment (set on forward, optionally overwritten on approve)
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    driver_name: Optional[str] = None  # joined from drivers
    driver_contact: Optional[str] = None  # joined from drivers
    vehicle_type: Optional[str] = None  # joined from vehicles
    vehicle_number: Optional[str] = None  # joined from vehicles

    # Review trail
    manager_comments: Optional[str] = None  # written by forward
    supervisor_comments: Optional[str] = None  # written by approve/disapprove
    pd_comments: Optional[str] = None  # written by recommend/not_recommend
    forwarded_by: Optional[str] = None
    reviewed_by: Optional[str] = None
    recommended_by: Optional[str] = None

    letter_id: Optional[str] = None
    meeting_agenda: Optional[str] = None
    venue: Optional[str] = None
    purchase_details: Optional[str] = None
    purchase_items: Optional[str] = None
    purchase_case_number: Optional[str] = None
    subject: Optional[str] = None
    other_purpose: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        if isinstance(v, str):
            return RequestStatus.from_stored(v)
        return v

    @field_validator("officials", mode="before")
    @classmethod
    def parse_officials(cls, v):
        # asyncpg returns JSONB as text
        if isinstance(v, str):
            return json.loads(v)
        if v is None:
            return []
        return v
