from textwrap import dedent

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger

from tms_api.auth.credentials import get_verifier
from tms_api.errors import handle_broad_exceptions
from tms_api.errors import handle_pydantic_validation_errors
from tms_api.errors import handle_transport_errors
from tms_api.exceptions import TransportError
from tms_api.monitoring.logger import configure_logger
from tms_api.monitoring.request_context import RequestContextMiddleware
from tms_api.routes.routes_auth import ROUTER_AUTH
from tms_api.routes.routes_dashboard import ROUTER_DASHBOARD
from tms_api.routes.routes_fleet import ROUTER_FLEET
from tms_api.routes.routes_health import ROUTER_HEALTH
from tms_api.routes.routes_requests import ROUTER_REQUESTS
from tms_api.routes.routes_users import ROUTER_USERS
from tms_api.settings import Settings
from tms_api.workflow.db.pool import DomainDBPool
from tms_api.workflow.db.repository_user import UserRepository
from tms_api.workflow.db.seed import seed_demo_users


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded directly from environment variables via pydantic-settings,
    or from a .env file during local development.
    """
    settings = settings or Settings()

    configure_logger(log_level=settings.log_level)

    logger.info(
        "Configuration loaded successfully",
        credential_scheme=settings.credential_scheme,
        seed_demo_users=settings.seed_demo_users,
        allow_empty_officials=settings.allow_empty_officials,
        require_future_start=settings.require_future_start,
    )

    app = FastAPI(
        title=settings.service_name,
        version="v1",
        description=dedent(
            """
        Transport requisition approval workflow.

        | Role | Can |
        | --- | --- |
        | User | submit and cancel own requests |
        | PD | recommend or not recommend requests pinned to them |
        | Supervisor | assign a driver and vehicle and forward |
        | Manager | approve or disapprove, manage users, fleet and reports |

        Call `POST /api/auth/login` and send the returned user `id` as the `X-User-Id` header.
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    # Add request context middleware for tracking who/where requests come from
    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH, prefix="/api")
    app.include_router(ROUTER_AUTH, prefix="/api")
    app.include_router(ROUTER_USERS, prefix="/api")
    app.include_router(ROUTER_REQUESTS, prefix="/api")
    app.include_router(ROUTER_DASHBOARD, prefix="/api")
    app.include_router(ROUTER_FLEET, prefix="/api")

    app.state.domain_db_pool = DomainDBPool(
        settings.database_connection_string,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout,
    )

    @app.on_event("startup")
    async def startup_database():
        """Open the database pool, apply migrations and optionally seed demo users."""
        await app.state.domain_db_pool.initialize()
        logger.success("Requisition database initialized")

        if settings.seed_demo_users:
            created = await seed_demo_users(
                UserRepository(app.state.domain_db_pool.pool),
                get_verifier(settings.credential_scheme),
            )
            logger.info("Demo user seeding finished", created=created)

    @app.on_event("shutdown")
    async def shutdown_database():
        """Close database connections."""
        await app.state.domain_db_pool.close()
        logger.info("Requisition database closed")

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=TransportError,
        handler=handle_transport_errors,
    )

    app.middleware("http")(handle_broad_exceptions)

    logger.info("Starting Transport Requisition API application")
    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
