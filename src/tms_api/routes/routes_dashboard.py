"""
Dashboard and Report API Routes
"""

from collections import Counter
from datetime import datetime
from datetime import timezone
from typing import Optional

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends
from fastapi import Query
from fastapi import status

from tms_api.dependencies import get_current_actor
from tms_api.dependencies import get_lifecycle_manager
from tms_api.dependencies import require_roles
from tms_api.schemas.schemas import DashboardResponse
from tms_api.schemas.schemas import ReportResponse
from tms_api.workflow.enums import UserRole
from tms_api.workflow.lifecycle import RequestLifecycleManager
from tms_api.workflow.models.user import Actor
from tms_api.workflow.views import ReportFilter
from tms_api.workflow.views import dashboard_summary
from tms_api.workflow.views import filter_report

ROUTER_DASHBOARD = APIRouter(tags=["Dashboard"])


@ROUTER_DASHBOARD.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard summary for the acting user",
    description="Status counts over the requests the actor can see and monthly totals for one year",
)
async def get_dashboard(
    year: Optional[int] = Query(
        default=None, ge=2000, le=2100, description="Year for monthly totals; defaults to the current year"
    ),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> DashboardResponse:
    year = year or datetime.now(timezone.utc).year
    summary = dashboard_summary(actor, await lifecycle.list_requests(), year)
    return DashboardResponse(Message=f"{summary.total} request(s) visible", Year=year, Summary=summary)


@ROUTER_DASHBOARD.post(
    "/reports",
    response_model=ReportResponse,
    summary="Filter requests into a report",
    description="Every supplied criterion must match. Dates are inclusive and compared to the departure day.",
    responses={status.HTTP_403_FORBIDDEN: {"description": "Approvers only"}},
)
async def generate_report(
    criteria: Optional[ReportFilter] = Body(default=None),
    actor: Actor = Depends(require_roles(UserRole.APPROVER)),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> ReportResponse:
    matched = filter_report(await lifecycle.list_requests(), criteria or ReportFilter())
    status_counts = Counter(request.status.value for request in matched)
    return ReportResponse(
        Message=f"Report contains {len(matched)} request(s)",
        GeneratedAt=datetime.now(timezone.utc),
        Count=len(matched),
        Requests=matched,
        StatusCounts=dict(status_counts),
    )
