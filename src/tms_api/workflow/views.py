"""
Role Views

Read-side policy over the list of requests: which requests each role sees in its review
queue, its history and its dashboard, plus the report filter. Nothing here mutates a
request.
"""

from datetime import date
from datetime import datetime
from datetime import time
from datetime import timezone
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import Field
from pydantic import model_validator

from tms_api.workflow.enums import RequestStatus
from tms_api.workflow.enums import RequisitionType
from tms_api.workflow.enums import UserRole
from tms_api.workflow.models.request import TransportRequest
from tms_api.workflow.models.user import Actor

# ════════════════════════════════════════════════════════════════════════════
# Per-role status sets
# ════════════════════════════════════════════════════════════════════════════

INCOMING_STATUSES: Dict[UserRole, frozenset] = {
    UserRole.APPROVER: frozenset({RequestStatus.PENDING, RequestStatus.RECOMMENDED, RequestStatus.FORWARDED}),
    UserRole.FIRST_LINE_REVIEWER: frozenset({RequestStatus.PENDING, RequestStatus.RECOMMENDED}),
    UserRole.RECOMMENDER: frozenset({RequestStatus.PENDING}),
}

HISTORY_STATUSES: Dict[UserRole, frozenset] = {
    UserRole.FIRST_LINE_REVIEWER: frozenset(
        {RequestStatus.FORWARDED, RequestStatus.APPROVED, RequestStatus.DISAPPROVED}
    ),
    UserRole.APPROVER: frozenset({RequestStatus.APPROVED, RequestStatus.DISAPPROVED}),
}

DASHBOARD_STATUSES: Dict[UserRole, tuple] = {
    UserRole.REQUESTER: (
        RequestStatus.PENDING,
        RequestStatus.APPROVED,
        RequestStatus.DISAPPROVED,
        RequestStatus.FORWARDED,
        RequestStatus.RECOMMENDED,
        RequestStatus.NOT_RECOMMENDED,
        RequestStatus.CANCELLED,
    ),
    UserRole.FIRST_LINE_REVIEWER: (
        RequestStatus.RECOMMENDED,
        RequestStatus.FORWARDED,
        RequestStatus.APPROVED,
        RequestStatus.DISAPPROVED,
    ),
    UserRole.APPROVER: (RequestStatus.FORWARDED, RequestStatus.APPROVED, RequestStatus.DISAPPROVED),
    UserRole.RECOMMENDER: (RequestStatus.PENDING, RequestStatus.RECOMMENDED, RequestStatus.NOT_RECOMMENDED),
}

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _owned_by(actor: Actor, request: TransportRequest) -> bool:
    return request.employee_number == actor.employee_number


def _pinned_to(actor: Actor, request: TransportRequest) -> bool:
    return request.pd_id == actor.id


# ════════════════════════════════════════════════════════════════════════════
# Queues
# ════════════════════════════════════════════════════════════════════════════


def incoming_requests(actor: Actor, requests: Iterable[TransportRequest]) -> List[TransportRequest]:
    """
    Requests waiting on ``actor``.

    Approvers see Pending, Recommended and Forwarded; first-line reviewers see Pending and
    Recommended; recommenders see Pending requests pinned to them; requesters see their own.
    """
    if actor.role == UserRole.REQUESTER:
        return [r for r in requests if _owned_by(actor, r)]
    statuses = INCOMING_STATUSES[actor.role]
    if actor.role == UserRole.RECOMMENDER:
        return [r for r in requests if r.status in statuses and _pinned_to(actor, r)]
    return [r for r in requests if r.status in statuses]


def history_requests(actor: Actor, requests: Iterable[TransportRequest]) -> List[TransportRequest]:
    """Requests ``actor`` has already dealt with, or for requesters, everything they submitted."""
    if actor.role == UserRole.REQUESTER:
        return [r for r in requests if _owned_by(actor, r)]
    if actor.role == UserRole.RECOMMENDER:
        return [r for r in requests if _pinned_to(actor, r) and r.status != RequestStatus.PENDING]
    statuses = HISTORY_STATUSES[actor.role]
    return [r for r in requests if r.status in statuses]


def can_see(actor: Actor, request: TransportRequest) -> bool:
    """Requesters see their own requests, recommenders the ones pinned to them, everyone else all."""
    if actor.role == UserRole.REQUESTER:
        return _owned_by(actor, request)
    if actor.role == UserRole.RECOMMENDER:
        return _pinned_to(actor, request)
    return True


def visible_requests(actor: Actor, requests: Iterable[TransportRequest]) -> List[TransportRequest]:
    """Dashboard scope of ``actor``."""
    return [r for r in requests if can_see(actor, r)]


# ════════════════════════════════════════════════════════════════════════════
# Dashboard
# ════════════════════════════════════════════════════════════════════════════


class MonthlyTotal(BaseModel):
    month: str
    total: int


class DashboardSummary(BaseModel):
    """Counts shown on a role's dashboard."""

    total: int
    status_counts: Dict[str, int]
    monthly_totals: List[MonthlyTotal]


def dashboard_summary(actor: Actor, requests: Iterable[TransportRequest], year: int) -> DashboardSummary:
    """
    Summarize the requests visible to ``actor``.

    Status counts are limited to the statuses the role's dashboard displays and omit
    zeros. Monthly totals count visible requests departing in ``year``.
    """
    visible = visible_requests(actor, requests)

    status_counts = {}
    for status in DASHBOARD_STATUSES[actor.role]:
        count = sum(1 for r in visible if r.status == status)
        if count:
            status_counts[status.value] = count

    buckets = [0] * 12
    for r in visible:
        if r.from_time.year == year:
            buckets[r.from_time.month - 1] += 1

    return DashboardSummary(
        total=len(visible),
        status_counts=status_counts,
        monthly_totals=[MonthlyTotal(month=name, total=buckets[i]) for i, name in enumerate(MONTHS)],
    )


# ════════════════════════════════════════════════════════════════════════════
# Reports
# ════════════════════════════════════════════════════════════════════════════


class ReportFilter(BaseModel):
    """Report criteria. Every supplied criterion must match."""

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    status: Optional[RequestStatus] = None
    requisition_type: Optional[RequisitionType] = None
    limit: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_window(self) -> "ReportFilter":
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to must not be before date_from")
        return self


def filter_report(requests: Iterable[TransportRequest], criteria: ReportFilter) -> List[TransportRequest]:
    """
    Apply report criteria.

    The date window is inclusive on both ends and is compared against each request's
    departure time, taken as a UTC calendar day.
    """
    start = datetime.combine(criteria.date_from, time.min, tzinfo=timezone.utc) if criteria.date_from else None
    end = datetime.combine(criteria.date_to, time.max, tzinfo=timezone.utc) if criteria.date_to else None

    matched = []
    for r in requests:
        departure = r.from_time if r.from_time.tzinfo else r.from_time.replace(tzinfo=timezone.utc)
        if start and departure < start:
            continue
        if end and departure > end:
            continue
        if criteria.driver_id and r.driver_id != criteria.driver_id:
            continue
        if criteria.vehicle_id and r.vehicle_id != criteria.vehicle_id:
            continue
        if criteria.status and r.status != criteria.status:
            continue
        if criteria.requisition_type and r.requisition_type != criteria.requisition_type:
            continue
        matched.append(r)

    if criteria.limit:
        return matched[: criteria.limit]
    return matched
