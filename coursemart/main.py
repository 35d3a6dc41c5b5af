"""CourseMart API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursemart.auth.router import router as auth_router
from coursemart.auth.router import users_router
from coursemart.auth.service import UserService
from coursemart.config import Settings, get_settings
from coursemart.core.context import get_request_id
from coursemart.core.database import init_async_cassandra, shutdown_async_cassandra
from coursemart.core.errors import AppError
from coursemart.core.logging import configure_structlog, get_logger
from coursemart.core.middleware import RequestContextMiddleware
from coursemart.core.redis import init_redis, shutdown_redis
from coursemart.courses.cascade import CascadeService
from coursemart.courses.router import router as courses_router
from coursemart.courses.service import CourseService
from coursemart.email.service import EmailService
from coursemart.enrollments.service import EnrollmentFulfiller
from coursemart.health import router as health_router
from coursemart.payments.gateway import PaymentGateway
from coursemart.payments.router import router as payments_router
from coursemart.payments.service import OrderService, PaymentVerifier
from coursemart.payments.signature import WebhookSigner
from coursemart.progress.router import router as progress_router
from coursemart.progress.service import ProgressTracker
from coursemart.reviews.router import router as reviews_router
from coursemart.reviews.service import ReviewService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def init_services(
    app: FastAPI,
    session: Any,
    settings: Settings,
    redis_client: Any = None,
    email_service: EmailService | None = None,
) -> None:
    """Wire the service graph onto ``app.state``."""
    keyspace = settings.cassandra_keyspace

    users = UserService(
        session=session,
        keyspace=keyspace,
        reset_token_ttl=timedelta(
            minutes=settings.password_reset_token_expire_minutes
        ),
    )
    courses = CourseService(session=session, keyspace=keyspace, users=users)
    progress = ProgressTracker(session=session, keyspace=keyspace, courses=courses)
    reviews = ReviewService(session=session, keyspace=keyspace, courses=courses)

    fulfiller = EnrollmentFulfiller(
        courses=courses,
        users=users,
        progress=progress,
        email_service=email_service,
        frontend_url=settings.frontend_url,
    )
    gateway = PaymentGateway(
        base_url=settings.payment_api_base_url,
        key_id=settings.payment_key_id,
        key_secret=settings.payment_key_secret,
        timeout=settings.payment_timeout_seconds,
    )

    app.state.user_service = users
    app.state.course_service = courses
    app.state.progress_tracker = progress
    app.state.review_service = reviews
    app.state.cascade_service = CascadeService(
        courses=courses, users=users, progress=progress, reviews=reviews
    )
    app.state.order_service = OrderService(
        courses=courses, gateway=gateway, currency=settings.payment_currency
    )
    # No verifier without a secret; the webhook dependency answers 503
    if settings.webhook_configured:
        app.state.payment_verifier = PaymentVerifier(
            signer=WebhookSigner(settings.payment_webhook_secret),
            fulfiller=fulfiller,
            redis_client=redis_client,
            dedupe_ttl_seconds=settings.webhook_dedupe_ttl_seconds,
        )
    else:
        logger.warning("webhook_secret_missing", message="Webhooks will return 503")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis only backs webhook deduplication; fulfillment is idempotent without it
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - webhook dedupe cache disabled",
        )

    email_service = None
    if settings.email_configured:
        email_service = EmailService(
            credentials_path=settings.email_credentials_path,
            sender_address=settings.email_sender_address,
            sender_name=settings.email_sender_name,
        )
        app.state.email_service = email_service
        logger.info("email_service_initialized", sender=settings.email_sender_address)

    if not settings.payment_configured:
        logger.warning("payment_credentials_missing")

    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")
        init_services(app, session, settings, redis_client, email_service)
        logger.info("services_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces are never rendered; the handlers below log them instead
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course marketplace - enrollment and progress API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    def _error_body(
        request: Request, status_code: int, message: str, code: str
    ) -> dict[str, Any]:
        return {
            "success": False,
            "error": True,
            "message": message,
            "code": code,
            "status_code": status_code,
            "request_id": _get_request_id_safe(request),
        }

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
        """Render domain errors with their code and status."""
        internal = exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
        log = logger.error if internal else logger.info
        log(
            "app_error",
            error_code=exc.code,
            status_code=exc.status_code,
            error_message=exc.message,
            path=request.url.path,
            method=request.method,
        )

        body = _error_body(
            request,
            exc.status_code,
            "Internal server error" if internal else exc.message,
            exc.code,
        )
        details = exc.to_dict().get("details")
        if details:
            body["details"] = details
        return ORJSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, message, "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Report every violated field, not just the first."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        body = _error_body(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            "validation_error",
        )
        body["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
                "internal_error",
            ),
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(courses_router)
    app.include_router(reviews_router)
    app.include_router(progress_router)
    app.include_router(payments_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "CourseMart API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
