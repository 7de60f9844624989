"""
Workflow Enums

All enum types used throughout the requisition workflow.
Values must match exactly with database constraints.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Identity Enums
# ════════════════════════════════════════════════════════════════════════════


class UserRole(str, Enum):
    """Role held by a user. Every user has exactly one."""

    REQUESTER = "User"  # Submits requests
    FIRST_LINE_REVIEWER = "Supervisor"  # Assigns driver/vehicle and forwards
    APPROVER = "Manager"  # Final approve/disapprove authority
    RECOMMENDER = "PD"  # Pre-screens pending requests of pinned requesters


# ════════════════════════════════════════════════════════════════════════════
# Request Enums
# ════════════════════════════════════════════════════════════════════════════


class RequestStatus(str, Enum):
    """Request lifecycle status."""

    PENDING = "Pending"
    RECOMMENDED = "Recommended"
    NOT_RECOMMENDED = "Not Recommended"
    FORWARDED = "Forwarded"
    APPROVED = "Approved"
    DISAPPROVED = "Disapproved"
    CANCELLED = "Cancelled"

    @classmethod
    def from_stored(cls, value: str) -> "RequestStatus":
        """Parse a stored status; legacy 'Rejected' rows read as Disapproved."""
        if value == "Rejected":
            return cls.DISAPPROVED
        return cls(value)


class Transition(str, Enum):
    """Status-changing operations on a request."""

    RECOMMEND = "recommend"
    NOT_RECOMMEND = "not_recommend"
    FORWARD = "forward"
    APPROVE = "approve"
    DISAPPROVE = "disapprove"
    CANCEL = "cancel"


class RequisitionType(str, Enum):
    """Whether the trip is official business or private."""

    OFFICIAL = "Official"
    PRIVATE = "Private"


class RequestReason(str, Enum):
    """Trip purpose. Each reason has its own required fields."""

    MEETING = "For Meeting"
    PURCHASE = "For Purchase"
    OTHER = "Other"


# ════════════════════════════════════════════════════════════════════════════
# Audit Enums
# ════════════════════════════════════════════════════════════════════════════


class AuditAction(str, Enum):
    """Action recorded in the audit trail."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    RECOMMENDED = "RECOMMENDED"
    NOT_RECOMMENDED = "NOT_RECOMMENDED"
    FORWARDED = "FORWARDED"
    APPROVED = "APPROVED"
    DISAPPROVED = "DISAPPROVED"
    CANCELLED = "CANCELLED"
    PASSWORD_RESET = "PASSWORD_RESET"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
