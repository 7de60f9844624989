"""
User API Routes

User administration, restricted to approvers, plus the recommender lookup used when
pinning requesters.
"""

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends
from fastapi import Path
from fastapi import status

from tms_api.dependencies import get_current_actor
from tms_api.dependencies import get_identity_service
from tms_api.dependencies import require_roles
from tms_api.schemas.schemas import MessageResponse
from tms_api.schemas.schemas import PasswordResetResponse
from tms_api.schemas.schemas import UserResponse
from tms_api.schemas.schemas import UsersResponse
from tms_api.workflow.enums import UserRole
from tms_api.workflow.models.user import Actor
from tms_api.workflow.models.user import UserPayload
from tms_api.workflow.services.identity_service import IdentityService

ROUTER_USERS = APIRouter(tags=["Users"], prefix="/users")

require_approver = require_roles(UserRole.APPROVER)


@ROUTER_USERS.get(
    "",
    response_model=UsersResponse,
    summary="List users",
    responses={status.HTTP_403_FORBIDDEN: {"description": "Approvers only"}},
)
async def list_users(
    actor: Actor = Depends(require_approver),
    identity: IdentityService = Depends(get_identity_service),
) -> UsersResponse:
    """List every user ordered by name."""
    users = await identity.list_users()
    return UsersResponse(Message=f"Found {len(users)} user(s)", Count=len(users), Users=users)


@ROUTER_USERS.get(
    "/recommenders",
    response_model=UsersResponse,
    summary="List recommenders a requester can be pinned to",
)
async def list_recommenders(
    actor: Actor = Depends(get_current_actor),
    identity: IdentityService = Depends(get_identity_service),
) -> UsersResponse:
    recommenders = await identity.list_recommenders()
    return UsersResponse(
        Message=f"Found {len(recommenders)} recommender(s)",
        Count=len(recommenders),
        Users=recommenders,
    )


@ROUTER_USERS.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    responses={
        status.HTTP_201_CREATED: {"description": "User created"},
        status.HTTP_400_BAD_REQUEST: {"description": "Missing password or invalid pinning"},
        status.HTTP_409_CONFLICT: {"description": "Username or employee number already exists"},
    },
)
async def create_user(
    payload: UserPayload = Body(...),
    actor: Actor = Depends(require_approver),
    identity: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    user = await identity.create_user(payload, performed_by=actor.id)
    return UserResponse(Message=f"User created: {user.username}", User=user)


@ROUTER_USERS.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update a user",
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "User not found"},
        status.HTTP_409_CONFLICT: {"description": "Username or employee number already exists"},
    },
)
async def update_user(
    user_id: str = Path(..., description="User id"),
    payload: UserPayload = Body(...),
    actor: Actor = Depends(require_approver),
    identity: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    """Update a user. Leave ``password`` out to keep the current one."""
    user = await identity.update_user(user_id, payload, performed_by=actor.id)
    return UserResponse(Message=f"User updated: {user.username}", User=user)


@ROUTER_USERS.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Delete a user",
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "User not found"},
        status.HTTP_409_CONFLICT: {"description": "User is still referenced"},
    },
)
async def delete_user(
    user_id: str = Path(..., description="User id"),
    actor: Actor = Depends(require_approver),
    identity: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    await identity.delete_user(user_id, performed_by=actor.id)
    return MessageResponse(Message=f"User deleted: {user_id}")


@ROUTER_USERS.post(
    "/{user_id}/reset-password",
    response_model=PasswordResetResponse,
    summary="Reset a user's password",
    description="Sets the password to the user's employee number repeated three times.",
    responses={status.HTTP_404_NOT_FOUND: {"description": "User not found"}},
)
async def reset_password(
    user_id: str = Path(..., description="User id"),
    actor: Actor = Depends(require_approver),
    identity: IdentityService = Depends(get_identity_service),
) -> PasswordResetResponse:
    new_password = await identity.reset_password(user_id, performed_by=actor.id)
    return PasswordResetResponse(Message="Password reset", UserId=user_id, NewPassword=new_password)
