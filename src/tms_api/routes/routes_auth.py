"""
Auth API Routes

Login, the current user, and self-service password changes.
"""

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends
from fastapi import status
from loguru import logger

from tms_api.dependencies import get_current_actor
from tms_api.dependencies import get_identity_service
from tms_api.exceptions import CredentialError
from tms_api.schemas.schemas import ChangePasswordRequest
from tms_api.schemas.schemas import LoginRequest
from tms_api.schemas.schemas import MessageResponse
from tms_api.schemas.schemas import UserResponse
from tms_api.workflow.models.user import Actor
from tms_api.workflow.services.identity_service import IdentityService

ROUTER_AUTH = APIRouter(tags=["Auth"], prefix="/auth")


@ROUTER_AUTH.post(
    "/login",
    response_model=UserResponse,
    summary="Authenticate with username and password",
    description="Returns the user record. Send its `id` as the `X-User-Id` header on later calls.",
    responses={
        status.HTTP_200_OK: {"description": "Credentials accepted"},
        status.HTTP_401_UNAUTHORIZED: {"description": "Invalid username or password"},
    },
)
async def login(
    credentials: LoginRequest = Body(...),
    identity: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    """Authenticate a user."""
    user = await identity.authenticate(credentials.username, credentials.password)
    if user is None:
        raise CredentialError("Invalid username or password")

    return UserResponse(Message=f"Welcome, {user.name}", User=user)


@ROUTER_AUTH.get(
    "/me",
    response_model=UserResponse,
    summary="Get the acting user",
    responses={
        status.HTTP_200_OK: {"description": "Current user"},
        status.HTTP_401_UNAUTHORIZED: {"description": "Missing or unknown X-User-Id"},
    },
)
async def get_me(
    actor: Actor = Depends(get_current_actor),
    identity: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    """Return the user named by the X-User-Id header."""
    user = await identity.get_user(actor.id)
    return UserResponse(Message="Current user", User=user)


@ROUTER_AUTH.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change your own password",
    responses={
        status.HTTP_200_OK: {"description": "Password changed"},
        status.HTTP_400_BAD_REQUEST: {"description": "New password too short"},
        status.HTTP_401_UNAUTHORIZED: {"description": "Old password incorrect"},
    },
)
async def change_password(
    body: ChangePasswordRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    identity: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    """Change the acting user's password after checking the old one."""
    await identity.change_password(actor.id, body.old_password, body.new_password)
    logger.info("Password changed via API", user_id=actor.id)
    return MessageResponse(Message="Password changed successfully")
