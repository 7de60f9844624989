"""
Fleet Models

Drivers and vehicles referenced by forwarded and approved requests.
"""

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


class Driver(BaseModel):
    """Driver database model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    contact: str


class DriverPayload(BaseModel):
    """Fields accepted when creating or updating a driver."""

    name: str = Field(min_length=1)
    contact: str = Field(min_length=1)

    @field_validator("name", "contact")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class Vehicle(BaseModel):
    """Vehicle database model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    vehicle_number: str  # external identifier, e.g. a registration plate
    type: str


class VehiclePayload(BaseModel):
    """Fields accepted when creating or updating a vehicle."""

    vehicle_number: str = Field(min_length=1)
    type: str = Field(min_length=1)

    @field_validator("vehicle_number", "type")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v
