"""
Request Transition Table

The complete set of status-changing operations on a transport request: which statuses
each transition may start from, which role may trigger it, the status it produces and
the request fields it is entitled to write.
"""

from typing import Dict
from typing import FrozenSet
from typing import List

from pydantic import BaseModel
from pydantic import ConfigDict

from tms_api.exceptions import InvalidTransition
from tms_api.workflow.enums import AuditAction
from tms_api.workflow.enums import RequestStatus
from tms_api.workflow.enums import Transition
from tms_api.workflow.enums import UserRole


class TransitionRule(BaseModel):
    """One row of the transition table."""

    model_config = ConfigDict(frozen=True)

    transition: Transition
    allowed_from: FrozenSet[RequestStatus]
    actor_role: UserRole
    target: RequestStatus
    audit_action: AuditAction
    writes: FrozenSet[str] = frozenset()  # request columns this transition may set besides status


TRANSITION_TABLE: Dict[Transition, TransitionRule] = {
    Transition.RECOMMEND: TransitionRule(
        transition=Transition.RECOMMEND,
        allowed_from=frozenset({RequestStatus.PENDING}),
        actor_role=UserRole.RECOMMENDER,
        target=RequestStatus.RECOMMENDED,
        audit_action=AuditAction.RECOMMENDED,
        writes=frozenset({"pd_comments", "recommended_by"}),
    ),
    Transition.NOT_RECOMMEND: TransitionRule(
        transition=Transition.NOT_RECOMMEND,
        allowed_from=frozenset({RequestStatus.PENDING}),
        actor_role=UserRole.RECOMMENDER,
        target=RequestStatus.NOT_RECOMMENDED,
        audit_action=AuditAction.NOT_RECOMMENDED,
        writes=frozenset({"pd_comments", "recommended_by"}),
    ),
    Transition.FORWARD: TransitionRule(
        transition=Transition.FORWARD,
        allowed_from=frozenset({RequestStatus.PENDING, RequestStatus.RECOMMENDED}),
        actor_role=UserRole.FIRST_LINE_REVIEWER,
        target=RequestStatus.FORWARDED,
        audit_action=AuditAction.FORWARDED,
        writes=frozenset({"driver_id", "vehicle_id", "manager_comments", "forwarded_by"}),
    ),
    Transition.APPROVE: TransitionRule(
        transition=Transition.APPROVE,
        allowed_from=frozenset({RequestStatus.FORWARDED}),
        actor_role=UserRole.APPROVER,
        target=RequestStatus.APPROVED,
        audit_action=AuditAction.APPROVED,
        writes=frozenset({"driver_id", "vehicle_id", "supervisor_comments", "reviewed_by"}),
    ),
    Transition.DISAPPROVE: TransitionRule(
        transition=Transition.DISAPPROVE,
        allowed_from=frozenset({RequestStatus.PENDING, RequestStatus.RECOMMENDED, RequestStatus.FORWARDED}),
        actor_role=UserRole.APPROVER,
        target=RequestStatus.DISAPPROVED,
        audit_action=AuditAction.DISAPPROVED,
        writes=frozenset({"supervisor_comments", "reviewed_by"}),
    ),
    Transition.CANCEL: TransitionRule(
        transition=Transition.CANCEL,
        allowed_from=frozenset({RequestStatus.PENDING}),
        actor_role=UserRole.REQUESTER,
        target=RequestStatus.CANCELLED,
        audit_action=AuditAction.CANCELLED,
    ),
}

# Every transition must have a rule
_missing = set(Transition) - set(TRANSITION_TABLE)
if _missing:
    raise RuntimeError(f"Transition table is missing rules for: {sorted(t.value for t in _missing)}")

TERMINAL_STATUSES: FrozenSet[RequestStatus] = frozenset(
    status for status in RequestStatus if not any(status in rule.allowed_from for rule in TRANSITION_TABLE.values())
)


def get_rule(transition: Transition) -> TransitionRule:
    """Look up the rule for a transition."""
    return TRANSITION_TABLE[transition]


def check_transition(transition: Transition, current: RequestStatus) -> TransitionRule:
    """
    Validate that ``transition`` may start from ``current``.

    Args:
        transition: Operation being attempted
        current: Status the request is in now

    Returns:
        The matching rule

    Raises:
        InvalidTransition: If ``current`` is not a valid source status
    """
    rule = TRANSITION_TABLE[transition]
    if current not in rule.allowed_from:
        raise InvalidTransition(transition.value, current.value)
    return rule


def available_transitions(role: UserRole, current: RequestStatus) -> List[Transition]:
    """Transitions a user with ``role`` could apply to a request in ``current`` status."""
    return [
        rule.transition
        for rule in TRANSITION_TABLE.values()
        if rule.actor_role == role and current in rule.allowed_from
    ]
