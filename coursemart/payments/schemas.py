"""Pydantic schemas for order initiation and processor webhooks."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ==============================================================================
# Order Initiation
# ==============================================================================


class CreateOrderRequest(BaseModel):
    course_id: UUID = Field(..., description="Course to purchase")


class OrderResponse(BaseModel):
    """What the client needs to open the processor's checkout."""

    success: bool = True
    order_id: str
    currency: str
    amount: int = Field(..., description="Amount in minor currency units")
    course_name: str
    course_description: str = ""
    thumbnail: str | None = None


# ==============================================================================
# Webhook Payload
# ==============================================================================
# Only the fields the fulfiller needs are modelled; the processor sends many
# more, which are ignored.


class PaymentNotes(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    course_id: UUID = Field(..., alias="courseId")
    user_id: UUID = Field(..., alias="userId")


class PaymentEntity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Processor payment id")
    order_id: str | None = None
    notes: PaymentNotes


class PaymentWrapper(BaseModel):
    model_config = ConfigDict(extra="ignore")

    entity: PaymentEntity


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    payment: PaymentWrapper


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str = Field(default="payment.captured")
    payload: WebhookPayload


class WebhookAck(BaseModel):
    """Body returned to the processor. 200 means 'do not retry'."""

    success: bool
    message: str
    already_enrolled: bool | None = None
