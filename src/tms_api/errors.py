"""Error handling for the FastAPI application and domain exceptions."""

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger

from tms_api.exceptions import TransportError
from tms_api.monitoring.logger import log_response_info

__all__ = [
    "handle_broad_exceptions",
    "handle_pydantic_validation_errors",
    "handle_transport_errors",
]


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"detail": "Internal server error", "error_type": type(err).__name__}

        # Get request body from request state (set by RequestContextMiddleware)
        request_body = getattr(request.state, "request_body", None)

        logger.error(
            f"Unhandled exception: {type(err).__name__}: {str(err)}",
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            error_message=str(err),
            request_body=request_body,
            exc_info=True,
        )

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors raised while building models inside a route."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "msg": error["msg"],
                "input": jsonable_encoder(error.get("input")),
            }
            for error in errors
        ]
    }

    request_body = getattr(request.state, "request_body", None)

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        request_body=request_body,
        response_body=error_response,
    )

    response = JSONResponse(
        status_code=422,
        content=error_response,
    )
    log_response_info(response)

    return response


async def handle_transport_errors(request: Request, exc: TransportError) -> JSONResponse:
    """
    Convert a domain error into an HTTP response.

    Maps each error kind to its status code:
    - ValidationError -> 400 Bad Request
    - CredentialError -> 401 Unauthorized
    - PermissionDenied -> 403 Forbidden
    - NotFound -> 404 Not Found
    - InvalidTransition, DuplicateEntity, EntityInUse -> 409 Conflict
    - StorageError -> 503 Service Unavailable

    Parameters
    ----------
    request : Request
        FastAPI request object
    exc : TransportError
        Domain exception

    Returns
    -------
    JSONResponse
        HTTP response with ``detail`` and ``error_type``
    """
    error_response = exc.to_dict()
    request_body = getattr(request.state, "request_body", None)

    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{exc.kind}: {exc.detail}",
        http_status=exc.http_status,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=exc.kind,
        request_body=request_body,
    )

    response = JSONResponse(
        status_code=exc.http_status,
        content=error_response,
    )
    log_response_info(response)
    return response
