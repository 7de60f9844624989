"""
Request Lifecycle Manager

Creates transport requests and applies the role-gated status transitions defined in
``tms_api.workflow.transitions``.

Every transition checks, in order and before anything is written:

1. its own inputs (ValidationError)
2. that the request exists (NotFound)
3. that the actor's role, and for recommenders and requesters their relationship to
   the request, entitles them to it (PermissionDenied)
4. that the request's current status is a valid source (InvalidTransition)
5. that any referenced driver or vehicle exists (NotFound)

The write itself is a single transaction in ``RequestRepository.apply_transition``,
which re-checks the status under a row lock so two racing transitions cannot both
succeed from the same source status.
"""

from datetime import datetime
from datetime import timezone
from typing import Callable
from typing import List
from typing import Optional
from typing import Union

import pydantic
from loguru import logger

from tms_api.exceptions import InvalidTransition
from tms_api.exceptions import NotFound
from tms_api.exceptions import PermissionDenied
from tms_api.exceptions import ValidationError
from tms_api.workflow.db.repository_audit import AuditTrailRepository
from tms_api.workflow.db.repository_driver import DriverRepository
from tms_api.workflow.db.repository_request import RequestRepository
from tms_api.workflow.db.repository_request import TransitionConflict
from tms_api.workflow.db.repository_user import UserRepository
from tms_api.workflow.db.repository_vehicle import VehicleRepository
from tms_api.workflow.enums import RequestStatus
from tms_api.workflow.enums import Transition
from tms_api.workflow.enums import UserRole
from tms_api.workflow.models.audit import AuditEntry
from tms_api.workflow.models.request import NewTransportRequest
from tms_api.workflow.models.request import TransportRequest
from tms_api.workflow.models.user import Actor
from tms_api.workflow.transitions import TransitionRule
from tms_api.workflow.transitions import available_transitions
from tms_api.workflow.transitions import check_transition
from tms_api.workflow.transitions import get_rule
from tms_api.workflow.views import can_see


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean(value: Optional[str]) -> Optional[str]:
    """Strip a free-text input; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def validation_error_from_pydantic(exc: pydantic.ValidationError) -> ValidationError:
    """Collapse a pydantic error into a single domain ValidationError."""
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    messages = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())) or 'payload'}: {err['msg']}" for err in exc.errors()
    )
    return ValidationError(messages, field=field)


class RequestLifecycleManager:
    """Applies creation and status transitions to transport requests."""

    def __init__(
        self,
        requests: RequestRepository,
        users: UserRepository,
        drivers: DriverRepository,
        vehicles: VehicleRepository,
        audit: AuditTrailRepository,
        allow_empty_officials: bool = False,
        require_future_start: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.requests = requests
        self.users = users
        self.drivers = drivers
        self.vehicles = vehicles
        self.audit = audit
        self.allow_empty_officials = allow_empty_officials
        self.require_future_start = require_future_start
        self.clock = clock

    # ────────────────────────────────────────────────────────────────────────
    # Creation and reads
    # ────────────────────────────────────────────────────────────────────────

    async def create_request(
        self,
        actor: Actor,
        payload: Union[NewTransportRequest, dict],
    ) -> TransportRequest:
        """
        Submit a new request in status Pending.

        Args:
            actor: Requester submitting the request
            payload: Creation fields; a dict is validated into NewTransportRequest

        Returns:
            The stored request

        Raises:
            ValidationError: Invalid payload, past departure, no officials, or requester not pinned
            PermissionDenied: Actor is not a requester or submits under another employee number
            NotFound: Actor's user record no longer exists
        """
        if isinstance(payload, dict):
            try:
                payload = NewTransportRequest.model_validate(payload)
            except pydantic.ValidationError as e:
                raise validation_error_from_pydantic(e) from e

        if actor.role != UserRole.REQUESTER:
            raise PermissionDenied(f"Only requesters can submit requests, not {actor.role.value}")
        if payload.employee_number != actor.employee_number:
            raise PermissionDenied("Requests can only be submitted under your own employee number")

        if not payload.officials and not self.allow_empty_officials:
            raise ValidationError("At least one official is required", field="officials")

        now = self.clock()
        if self.require_future_start and payload.from_time < now:
            raise ValidationError("Departure time must be in the future", field="from_time")

        user = await self.users.get(actor.id)
        if user is None:
            raise NotFound("User", actor.id)
        if not user.get("pd_id"):
            raise ValidationError("Requester is not pinned to a recommender", field="pd_id")

        fields = {
            "employee_number": payload.employee_number,
            "name": _clean(payload.name) or actor.name,
            "requisition_type": payload.requisition_type.value,
            "request_reason": payload.request_reason.value,
            "departing_location": payload.departing_location,
            "destination": payload.destination,
            "from_time": payload.from_time,
            "to_time": payload.to_time,
            "status": RequestStatus.PENDING.value,
            "request_generated_date": now,
            "officials": [official.model_dump() for official in payload.officials],
            "pd_id": user["pd_id"],
            **payload.reason_fields(),
        }

        request_id = await self.requests.create(fields, performed_by=actor.id)
        created = await self.get_request(request_id)

        logger.info(
            "Transport request created",
            request_id=request_id,
            employee_number=created.employee_number,
            pd_id=created.pd_id,
            actor_id=actor.id,
        )
        return created

    async def get_request(self, request_id: int) -> TransportRequest:
        """Get one request or raise NotFound."""
        row = await self.requests.get(request_id)
        if row is None:
            raise NotFound("Request", request_id)
        return TransportRequest.model_validate(row)

    async def get_visible_request(self, actor: Actor, request_id: int) -> TransportRequest:
        """Get one request ``actor`` may see; requests outside their scope are reported as NotFound."""
        request = await self.get_request(request_id)
        if not can_see(actor, request):
            logger.warning("Request outside actor scope", request_id=request_id, actor_id=actor.id)
            raise NotFound("Request", request_id)
        return request

    async def list_requests(self) -> List[TransportRequest]:
        """All requests, newest first."""
        return [TransportRequest.model_validate(row) for row in await self.requests.list_all()]

    async def request_history(self, actor: Actor, request_id: int) -> List[AuditEntry]:
        """Audit trail of one request ``actor`` may see, oldest first."""
        await self.get_visible_request(actor, request_id)
        rows = await self.audit.list_for_entity(self.requests.table, request_id)
        return [AuditEntry.model_validate(row) for row in rows]

    def allowed_transitions(self, actor: Actor, request: TransportRequest) -> List[Transition]:
        """Transitions ``actor`` could apply to ``request`` right now."""
        return [
            transition
            for transition in available_transitions(actor.role, request.status)
            if self._relationship_error(get_rule(transition), actor, request) is None
        ]

    # ────────────────────────────────────────────────────────────────────────
    # Transitions
    # ────────────────────────────────────────────────────────────────────────

    async def recommend(self, request_id: int, actor: Actor, comment: Optional[str] = None) -> TransportRequest:
        """Recommender endorses a pending request."""
        return await self._apply(
            Transition.RECOMMEND,
            request_id,
            actor,
            {"pd_comments": _clean(comment), "recommended_by": actor.name},
        )

    async def not_recommend(self, request_id: int, actor: Actor, comment: Optional[str] = None) -> TransportRequest:
        """Recommender declines to endorse a pending request."""
        return await self._apply(
            Transition.NOT_RECOMMEND,
            request_id,
            actor,
            {"pd_comments": _clean(comment), "recommended_by": actor.name},
        )

    async def forward(
        self,
        request_id: int,
        actor: Actor,
        driver_id: Optional[str],
        vehicle_id: Optional[str],
        comment: Optional[str] = None,
    ) -> TransportRequest:
        """First-line reviewer assigns a driver and vehicle and forwards for approval."""
        driver_id = _clean(driver_id)
        vehicle_id = _clean(vehicle_id)
        if not driver_id:
            raise ValidationError("driver_id is required to forward a request", field="driver_id")
        if not vehicle_id:
            raise ValidationError("vehicle_id is required to forward a request", field="vehicle_id")

        return await self._apply(
            Transition.FORWARD,
            request_id,
            actor,
            {
                "driver_id": driver_id,
                "vehicle_id": vehicle_id,
                "manager_comments": _clean(comment),
                "forwarded_by": actor.name,
            },
            driver_id=driver_id,
            vehicle_id=vehicle_id,
        )

    async def approve(
        self,
        request_id: int,
        actor: Actor,
        comment: Optional[str] = None,
        driver_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
    ) -> TransportRequest:
        """Approver grants a forwarded request, optionally re-assigning driver and vehicle."""
        driver_id = _clean(driver_id)
        vehicle_id = _clean(vehicle_id)

        fields = {"supervisor_comments": _clean(comment), "reviewed_by": actor.name}
        # Omitted assignments keep the values set on forward
        if driver_id:
            fields["driver_id"] = driver_id
        if vehicle_id:
            fields["vehicle_id"] = vehicle_id

        return await self._apply(
            Transition.APPROVE,
            request_id,
            actor,
            fields,
            driver_id=driver_id,
            vehicle_id=vehicle_id,
        )

    async def disapprove(self, request_id: int, actor: Actor, comment: Optional[str] = None) -> TransportRequest:
        """Approver refuses a request that has not been approved yet."""
        return await self._apply(
            Transition.DISAPPROVE,
            request_id,
            actor,
            {"supervisor_comments": _clean(comment), "reviewed_by": actor.name},
        )

    async def cancel(self, request_id: int, actor: Actor) -> TransportRequest:
        """Requester withdraws their own pending request."""
        return await self._apply(Transition.CANCEL, request_id, actor, {})

    async def _apply(
        self,
        transition: Transition,
        request_id: int,
        actor: Actor,
        fields: dict,
        driver_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
    ) -> TransportRequest:
        rule = get_rule(transition)
        unexpected = set(fields) - rule.writes
        if unexpected:
            raise RuntimeError(f"{transition.value} may not write {sorted(unexpected)}")

        current = await self.get_request(request_id)

        if actor.role != rule.actor_role:
            self._log_rejected(transition, request_id, actor, "role")
            raise PermissionDenied(f"{actor.role.value} cannot {transition.value} requests")
        relationship_error = self._relationship_error(rule, actor, current)
        if relationship_error:
            self._log_rejected(transition, request_id, actor, "relationship")
            raise PermissionDenied(relationship_error)

        try:
            check_transition(transition, current.status)
        except InvalidTransition:
            self._log_rejected(transition, request_id, actor, "status", status=current.status.value)
            raise

        if driver_id and not await self.drivers.exists(driver_id):
            raise NotFound("Driver", driver_id)
        if vehicle_id and not await self.vehicles.exists(vehicle_id):
            raise NotFound("Vehicle", vehicle_id)

        writes = {**fields, "status": rule.target.value}
        try:
            updated = await self.requests.apply_transition(
                request_id,
                writes,
                [status.value for status in rule.allowed_from],
                performed_by=actor.id,
                action=rule.audit_action,
            )
        except TransitionConflict as e:
            self._log_rejected(transition, request_id, actor, "concurrent", status=e.current_status)
            raise InvalidTransition(transition.value, e.current_status) from e
        if updated is None:
            raise NotFound("Request", request_id)

        result = TransportRequest.model_validate(updated)
        logger.info(
            "Transport request transitioned",
            request_id=request_id,
            transition=transition.value,
            from_status=current.status.value,
            to_status=result.status.value,
            actor_id=actor.id,
        )
        return result

    def _relationship_error(self, rule: TransitionRule, actor: Actor, request: TransportRequest) -> Optional[str]:
        """Reason the actor may not act on this particular request, or None."""
        if actor.role != rule.actor_role:
            return f"{actor.role.value} cannot {rule.transition.value} requests"
        if rule.actor_role == UserRole.RECOMMENDER and request.pd_id != actor.id:
            return "Request is pinned to a different recommender"
        if rule.actor_role == UserRole.REQUESTER and request.employee_number != actor.employee_number:
            return "Only the requester who submitted a request can cancel it"
        return None

    def _log_rejected(self, transition: Transition, request_id: int, actor: Actor, reason: str, **extra) -> None:
        logger.warning(
            "Transport request transition rejected",
            request_id=request_id,
            transition=transition.value,
            actor_id=actor.id,
            actor_role=actor.role.value,
            reason=reason,
            **extra,
        )
