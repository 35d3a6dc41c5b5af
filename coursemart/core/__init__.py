# Core infrastructure
from coursemart.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_trace_id,
    get_user_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from coursemart.core.errors import (
    AppError,
    AuthorizationError,
    ConflictError,
    IntegrityError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from coursemart.core.logging import configure_structlog, get_logger
from coursemart.core.middleware import RequestContextMiddleware


__all__ = [
    "AppError",
    "AuthorizationError",
    "ConflictError",
    "IntegrityError",
    "NotFoundError",
    "RequestContextMiddleware",
    "UpstreamError",
    "ValidationError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "get_user_id",
    "set_request_id",
    "set_trace_id",
    "set_user_id",
]
