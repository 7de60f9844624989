"""
Transport Request API Routes

Submission, role views and status transitions of transport requests. The acting user is
taken from the ``X-User-Id`` header; who may do what is decided by the lifecycle manager.
"""

from typing import Any
from typing import Dict
from typing import Optional

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends
from fastapi import Path
from fastapi import status

from tms_api.dependencies import get_current_actor
from tms_api.dependencies import get_lifecycle_manager
from tms_api.schemas.schemas import ApproveRequest
from tms_api.schemas.schemas import AuditResponse
from tms_api.schemas.schemas import CommentRequest
from tms_api.schemas.schemas import ForwardRequest
from tms_api.schemas.schemas import RequestResponse
from tms_api.schemas.schemas import RequestsResponse
from tms_api.schemas.schemas import TransitionsResponse
from tms_api.workflow.lifecycle import RequestLifecycleManager
from tms_api.workflow.models.user import Actor
from tms_api.workflow.views import history_requests
from tms_api.workflow.views import incoming_requests

ROUTER_REQUESTS = APIRouter(tags=["Requests"], prefix="/requests")

TRANSITION_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"description": "Invalid input"},
    status.HTTP_403_FORBIDDEN: {"description": "Actor may not apply this transition to this request"},
    status.HTTP_404_NOT_FOUND: {"description": "Request, driver or vehicle not found"},
    status.HTTP_409_CONFLICT: {"description": "Request is not in a status this transition accepts"},
}

EXAMPLE_REQUEST = {
    "employee_number": "1003",
    "requisition_type": "Official",
    "request_reason": "For Meeting",
    "departing_location": "Head Office",
    "destination": "Ministry",
    "from_time": "2026-03-01T09:00:00Z",
    "to_time": "2026-03-01T12:00:00Z",
    "officials": [{"name": "A. Perera", "employee_number": "2001"}],
    "letter_id": "L-2026-014",
    "meeting_agenda": "Budget review",
    "venue": "Conference room 2",
}


@ROUTER_REQUESTS.post(
    "",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a transport request",
    responses={
        status.HTTP_201_CREATED: {"description": "Request created in status Pending"},
        status.HTTP_400_BAD_REQUEST: {"description": "Invalid request fields"},
        status.HTTP_403_FORBIDDEN: {"description": "Only requesters can submit, under their own employee number"},
    },
)
async def create_request(
    payload: Dict[str, Any] = Body(..., examples=[EXAMPLE_REQUEST]),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestResponse:
    """
    Submit a new request.

    The body is validated by the lifecycle manager so field errors are reported as
    400 with the offending field.
    """
    created = await lifecycle.create_request(actor, payload)
    return RequestResponse(Message=f"Request {created.id} submitted", Request=created)


@ROUTER_REQUESTS.get(
    "/incoming",
    response_model=RequestsResponse,
    summary="Requests waiting on the acting user",
)
async def list_incoming(
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestsResponse:
    requests = incoming_requests(actor, await lifecycle.list_requests())
    return RequestsResponse(
        Message=f"Found {len(requests)} incoming request(s)", Count=len(requests), Requests=requests
    )


@ROUTER_REQUESTS.get(
    "/history",
    response_model=RequestsResponse,
    summary="Requests the acting user has already dealt with",
)
async def list_history(
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestsResponse:
    requests = history_requests(actor, await lifecycle.list_requests())
    return RequestsResponse(
        Message=f"Found {len(requests)} request(s) in history", Count=len(requests), Requests=requests
    )


@ROUTER_REQUESTS.get(
    "/{request_id}",
    response_model=RequestResponse,
    summary="Get a transport request",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Request not found"}},
)
async def get_request(
    request_id: int = Path(..., description="Request id"),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestResponse:
    request = await lifecycle.get_visible_request(actor, request_id)
    return RequestResponse(Message=f"Request {request_id}", Request=request)


@ROUTER_REQUESTS.get(
    "/{request_id}/audit",
    response_model=AuditResponse,
    summary="Audit trail of a transport request",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Request not found"}},
)
async def get_request_audit(
    request_id: int = Path(..., description="Request id"),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> AuditResponse:
    entries = await lifecycle.request_history(actor, request_id)
    return AuditResponse(Message=f"Found {len(entries)} audit entries", RequestId=request_id, Entries=entries)


@ROUTER_REQUESTS.get(
    "/{request_id}/transitions",
    response_model=TransitionsResponse,
    summary="Transitions the acting user can apply",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Request not found"}},
)
async def get_request_transitions(
    request_id: int = Path(..., description="Request id"),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> TransitionsResponse:
    request = await lifecycle.get_visible_request(actor, request_id)
    transitions = lifecycle.allowed_transitions(actor, request)
    return TransitionsResponse(
        Message=f"{len(transitions)} transition(s) available",
        RequestId=request_id,
        Status=request.status,
        Transitions=[transition.value for transition in transitions],
    )


# ════════════════════════════════════════════════════════════════════════════
# Transitions
# ════════════════════════════════════════════════════════════════════════════


@ROUTER_REQUESTS.post(
    "/{request_id}/recommend",
    response_model=RequestResponse,
    summary="Recommend a pending request",
    responses=TRANSITION_RESPONSES,
)
async def recommend_request(
    request_id: int = Path(..., description="Request id"),
    body: Optional[CommentRequest] = Body(default=None),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestResponse:
    updated = await lifecycle.recommend(request_id, actor, comment=body.comment if body else None)
    return RequestResponse(Message=f"Request {request_id} recommended", Request=updated)


@ROUTER_REQUESTS.post(
    "/{request_id}/not-recommend",
    response_model=RequestResponse,
    summary="Decline to recommend a pending request",
    responses=TRANSITION_RESPONSES,
)
async def not_recommend_request(
    request_id: int = Path(..., description="Request id"),
    body: Optional[CommentRequest] = Body(default=None),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestResponse:
    updated = await lifecycle.not_recommend(request_id, actor, comment=body.comment if body else None)
    return RequestResponse(Message=f"Request {request_id} not recommended", Request=updated)


@ROUTER_REQUESTS.post(
    "/{request_id}/forward",
    response_model=RequestResponse,
    summary="Assign a driver and vehicle and forward for approval",
    responses=TRANSITION_RESPONSES,
)
async def forward_request(
    request_id: int = Path(..., description="Request id"),
    body: ForwardRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestResponse:
    updated = await lifecycle.forward(
        request_id,
        actor,
        driver_id=body.driver_id,
        vehicle_id=body.vehicle_id,
        comment=body.comment,
    )
    return RequestResponse(Message=f"Request {request_id} forwarded", Request=updated)


@ROUTER_REQUESTS.post(
    "/{request_id}/approve",
    response_model=RequestResponse,
    summary="Approve a forwarded request",
    responses=TRANSITION_RESPONSES,
)
async def approve_request(
    request_id: int = Path(..., description="Request id"),
    body: Optional[ApproveRequest] = Body(default=None),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestResponse:
    body = body or ApproveRequest()
    updated = await lifecycle.approve(
        request_id,
        actor,
        comment=body.comment,
        driver_id=body.driver_id,
        vehicle_id=body.vehicle_id,
    )
    return RequestResponse(Message=f"Request {request_id} approved", Request=updated)


@ROUTER_REQUESTS.post(
    "/{request_id}/disapprove",
    response_model=RequestResponse,
    summary="Disapprove a request",
    responses=TRANSITION_RESPONSES,
)
async def disapprove_request(
    request_id: int = Path(..., description="Request id"),
    body: Optional[CommentRequest] = Body(default=None),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestResponse:
    updated = await lifecycle.disapprove(request_id, actor, comment=body.comment if body else None)
    return RequestResponse(Message=f"Request {request_id} disapproved", Request=updated)


@ROUTER_REQUESTS.post(
    "/{request_id}/cancel",
    response_model=RequestResponse,
    summary="Cancel your own pending request",
    responses=TRANSITION_RESPONSES,
)
async def cancel_request(
    request_id: int = Path(..., description="Request id"),
    actor: Actor = Depends(get_current_actor),
    lifecycle: RequestLifecycleManager = Depends(get_lifecycle_manager),
) -> RequestResponse:
    updated = await lifecycle.cancel(request_id, actor)
    return RequestResponse(Message=f"Request {request_id} cancelled", Request=updated)
