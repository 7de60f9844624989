"""FastAPI dependencies for accessing app state and the acting user."""

from typing import Callable
from typing import Optional

from fastapi import Depends
from fastapi import Header
from fastapi import HTTPException
from fastapi import Request
from fastapi import status
from loguru import logger

from tms_api.auth.credentials import get_verifier
from tms_api.exceptions import NotFound
from tms_api.settings import Settings
from tms_api.workflow.db.pool import DomainDBPool
from tms_api.workflow.db.repository_audit import AuditTrailRepository
from tms_api.workflow.db.repository_driver import DriverRepository
from tms_api.workflow.db.repository_request import RequestRepository
from tms_api.workflow.db.repository_user import UserRepository
from tms_api.workflow.db.repository_vehicle import VehicleRepository
from tms_api.workflow.enums import UserRole
from tms_api.workflow.lifecycle import RequestLifecycleManager
from tms_api.workflow.models.user import Actor
from tms_api.workflow.services.fleet_service import FleetService
from tms_api.workflow.services.identity_service import IdentityService


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def get_db_pool(request: Request) -> DomainDBPool:
    """Get the requisition database pool created by the application factory."""
    return request.app.state.domain_db_pool


def get_lifecycle_manager(
    db_pool: DomainDBPool = Depends(get_db_pool),
    settings: Settings = Depends(get_settings),
) -> RequestLifecycleManager:
    """Build the lifecycle manager over the shared pool."""
    pool = db_pool.pool
    return RequestLifecycleManager(
        requests=RequestRepository(pool),
        users=UserRepository(pool),
        drivers=DriverRepository(pool),
        vehicles=VehicleRepository(pool),
        audit=AuditTrailRepository(pool),
        allow_empty_officials=settings.allow_empty_officials,
        require_future_start=settings.require_future_start,
    )


def get_identity_service(
    db_pool: DomainDBPool = Depends(get_db_pool),
    settings: Settings = Depends(get_settings),
) -> IdentityService:
    """Build the identity service with the configured credential scheme."""
    pool = db_pool.pool
    return IdentityService(UserRepository(pool), RequestRepository(pool), get_verifier(settings.credential_scheme))


def get_fleet_service(db_pool: DomainDBPool = Depends(get_db_pool)) -> FleetService:
    """Build the fleet service."""
    pool = db_pool.pool
    return FleetService(DriverRepository(pool), VehicleRepository(pool), RequestRepository(pool))


async def get_current_actor(
    x_user_id: Optional[str] = Header(
        default=None,
        alias="X-User-Id",
        description="Id of the user performing the request, as returned by /api/auth/login",
    ),
    identity: IdentityService = Depends(get_identity_service),
) -> Actor:
    """
    Resolve the acting user from the X-User-Id header.

    Parameters
    ----------
    x_user_id : Optional[str]
        Value of the X-User-Id header
    identity : IdentityService
        Identity service used to look the user up

    Returns
    -------
    Actor
        The acting identity

    Raises
    ------
    HTTPException
        401 if the header is missing or names no user
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )

    try:
        user = await identity.get_user(x_user_id.strip())
    except NotFound:
        logger.warning("Unknown acting user", user_id=x_user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        ) from None

    return Actor.from_user(user)


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that only admits actors holding one of ``roles``.

    Parameters
    ----------
    *roles : UserRole
        Roles allowed through

    Returns
    -------
    Callable
        FastAPI dependency returning the Actor, raising 403 otherwise
    """

    async def _require(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{actor.role.value} is not allowed to perform this operation",
            )
        return actor

    return _require
