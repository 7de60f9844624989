"""
Workflow Models Module

All Pydantic models for the requisition workflow:
- Transport request payload and database model
- Users and the acting identity
- Fleet reference entities
- Audit trail entries
"""

from tms_api.workflow.models.audit import AuditEntry
from tms_api.workflow.models.fleet import Driver
from tms_api.workflow.models.fleet import DriverPayload
from tms_api.workflow.models.fleet import Vehicle
from tms_api.workflow.models.fleet import VehiclePayload
from tms_api.workflow.models.request import NewTransportRequest
from tms_api.workflow.models.request import Official
from tms_api.workflow.models.request import TransportRequest
from tms_api.workflow.models.user import Actor
from tms_api.workflow.models.user import User
from tms_api.workflow.models.user import UserPayload

__all__ = [
    "Actor",
    "AuditEntry",
    "Driver",
    "DriverPayload",
    "NewTransportRequest",
    "Official",
    "TransportRequest",
    "User",
    "UserPayload",
    "Vehicle",
    "VehiclePayload",
]
