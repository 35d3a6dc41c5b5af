"""Payment service layer.

- ``OrderService`` starts a purchase by creating a processor order.
- ``PaymentVerifier`` authenticates webhook deliveries and hands verified
  purchases to the enrollment fulfiller.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import pydantic
import structlog

from coursemart.core.errors import ConflictError, ValidationError
from coursemart.core.redis import is_webhook_processed, mark_webhook_processed

from .schemas import OrderResponse, WebhookAck, WebhookEvent


if TYPE_CHECKING:
    import redis.asyncio as redis

    from coursemart.courses.service import CourseService
    from coursemart.enrollments.service import EnrollmentFulfiller

    from .gateway import PaymentGateway
    from .signature import WebhookSigner

logger = structlog.get_logger(__name__)

# Events that mean money was captured for an order
FULFILLING_EVENTS = frozenset({"payment.captured", "order.paid"})

MINOR_UNITS = 100


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AlreadyEnrolledError(ConflictError):
    """Benign: the student already owns the course, no order is created."""

    def __init__(self, message: str = "Student is already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class InvalidSignatureError(ValidationError):
    """Webhook signature missing or wrong. No state is touched."""

    def __init__(self, message: str = "Invalid signature: request unauthorized"):
        super().__init__(message, code="invalid_signature")


def to_minor_units(price: Decimal) -> int:
    """Major currency units to integer minor units (500 -> 50000)."""
    return int((price * MINOR_UNITS).to_integral_value(rounding=ROUND_HALF_UP))


# ==============================================================================
# Order Initiator
# ==============================================================================


class OrderService:
    def __init__(
        self,
        courses: "CourseService",
        gateway: "PaymentGateway",
        currency: str = "INR",
    ):
        self.courses = courses
        self.gateway = gateway
        self.currency = currency

    async def initiate_order(self, user_id: UUID, course_id: UUID) -> OrderResponse:
        """Create a processor order for the student's purchase.

        No local state changes; enrollment only happens via the webhook.

        Raises:
            CourseNotFoundError: Course does not exist
            AlreadyEnrolledError: Student already enrolled
            PaymentProviderUnavailableError: Processor failed or timed out
        """
        course = await self.courses.require_course(course_id)
        if course.is_student_enrolled(user_id):
            raise AlreadyEnrolledError

        order = await self.gateway.create_order(
            amount=to_minor_units(course.price),
            currency=self.currency,
            receipt=f"rcpt_{uuid4().hex[:20]}",
            notes={"courseId": str(course_id), "userId": str(user_id)},
        )

        logger.info(
            "order_initiated",
            order_id=order.id,
            course_id=str(course_id),
            user_id=str(user_id),
            amount=order.amount,
        )
        return OrderResponse(
            order_id=order.id,
            currency=order.currency,
            amount=order.amount,
            course_name=course.title,
            course_description=course.description,
            thumbnail=course.thumbnail_url,
        )


# ==============================================================================
# Payment Verifier
# ==============================================================================


class PaymentVerifier:
    """Authenticate webhook deliveries, then fulfill the purchase."""

    def __init__(
        self,
        signer: "WebhookSigner",
        fulfiller: "EnrollmentFulfiller",
        redis_client: "redis.Redis | None" = None,
        dedupe_ttl_seconds: int = 86400,
    ):
        self.signer = signer
        self.fulfiller = fulfiller
        self.redis = redis_client
        self.dedupe_ttl_seconds = dedupe_ttl_seconds

    @staticmethod
    def parse_event(raw_body: bytes) -> WebhookEvent:
        """Validate a verified body, reporting every violated field at once."""
        try:
            return WebhookEvent.model_validate_json(raw_body)
        except pydantic.ValidationError as e:
            errors = [
                {
                    "field": ".".join(str(loc) for loc in err["loc"]),
                    "message": err["msg"],
                }
                for err in e.errors()
            ]
            raise ValidationError("Malformed webhook payload", errors=errors) from e

    async def handle_webhook(
        self,
        raw_body: bytes,
        signature: str | None,
        client_ip: str | None = None,
    ) -> WebhookAck:
        """Verify, parse and fulfill one delivery.

        Args:
            raw_body: Request body exactly as received
            signature: Value of the processor's signature header
            client_ip: Caller address, for the rejection log

        Raises:
            InvalidSignatureError: Signature missing or wrong
            ValidationError: Verified body lacks the purchase notes
            FulfillmentError: Enrollment failed; the processor should retry
        """
        if not self.signer.verify(raw_body, signature):
            logger.warning(
                "webhook_signature_rejected",
                client_ip=client_ip,
                has_signature=bool(signature),
                body_bytes=len(raw_body),
            )
            raise InvalidSignatureError

        event = self.parse_event(raw_body)
        if event.event not in FULFILLING_EVENTS:
            logger.info("webhook_event_ignored", webhook_event=event.event)
            return WebhookAck(success=True, message=f"Event {event.event} ignored")

        entity = event.payload.payment.entity
        notes = entity.notes

        if await is_webhook_processed(self.redis, entity.id):
            logger.info("webhook_duplicate_skipped", payment_id=entity.id)
            return WebhookAck(
                success=True,
                message="Payment already processed",
                already_enrolled=True,
            )

        result = await self.fulfiller.fulfill(notes.course_id, notes.user_id)
        await mark_webhook_processed(self.redis, entity.id, self.dedupe_ttl_seconds)

        return WebhookAck(
            success=True,
            message="Signature verified and course added successfully",
            already_enrolled=result.already_enrolled,
        )
