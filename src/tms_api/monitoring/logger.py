import json
import logging
import sys
import traceback

import loguru
from fastapi import Request
from fastapi import Response
from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<bold><white>{message}</white></bold> | <dim>{extra}</dim> {stacktrace}"
)

# Keys whose values never reach a log sink
REDACTED_KEYS = {"password", "old_password", "new_password"}


# Loggers configuration runs at the start of the application -- src/tms_api/__init__.py
def configure_logger(log_level: str = "INFO"):
    """
    Configure the loguru logger with a single stdout sink.

    Args:
        log_level: Minimum level written to stdout
    """
    # The request middleware already logs one line per request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger.remove()  # remove the default logger

    logger.add(
        sink=sys.stdout,
        level=log_level.upper(),
        diagnose=False,
        format=LOG_FORMAT,
        filter=process_log_record,
    )


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before they are passed to the formatter.

    1. Serialize the "extra" field to JSON so that it renders on a single line.
    2. For error logs, add a traceback with \r instead of \n so that log collectors do not
       split the traceback into multiple events.
    """
    extra = record["extra"]

    # serialize "extra" field to JSON
    if extra:
        record["extra"] = json.dumps(redact(extra), default=str)

    # add stacktrace to log record
    record["stacktrace"] = ""
    if record["exception"]:
        err = record["exception"]
        stacktrace = get_formatted_stacktrace(err, replace_newline_character_with_carriage_return=True)
        record["stacktrace"] = stacktrace

    return record


def redact(value):
    """Return a copy of ``value`` with password fields masked, recursing into dicts and lists."""
    if isinstance(value, dict):
        return {k: "***" if str(k).lower() in REDACTED_KEYS else redact(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def get_formatted_stacktrace(loguru_record_exception, replace_newline_character_with_carriage_return: bool) -> str:
    """Get the formatted stacktrace for the current exception."""
    exc_type, exc_value, exc_traceback = loguru_record_exception
    stacktrace_: list[str] = traceback.format_exception(exc_type, exc_value, exc_traceback)
    stacktrace: str = "".join(stacktrace_)
    if replace_newline_character_with_carriage_return:
        stacktrace = stacktrace.replace("\n", "\r")
    return stacktrace


def log_request_info(request: Request):
    """Log the request info."""
    request_info = {
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params.items()),
        "path_params": dict(request.path_params.items()),
        "base_url": str(request.base_url),
        "url": str(request.url),
        "client": str(request.client),
    }
    logger.debug("Request received", http_request=request_info)


def log_response_info(response: Response):
    """Log the response info."""
    response_info = {
        "status_code": response.status_code,
        "headers": dict(response.headers.items()),
    }
    logger.debug("Response sent", http_response=response_info)
