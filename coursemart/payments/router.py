"""Payment API endpoints.

- ``POST /v1/payments/orders`` starts a purchase (student only)
- ``POST /v1/payments/webhook`` receives processor notifications

The webhook is authenticated by its HMAC signature header, not by a user
token. Its status code tells the processor whether to retry: 200 means
done, 400 means never retry, 500 means retry later.
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse

from coursemart.auth.dependencies import StudentUser
from coursemart.config import get_settings
from coursemart.core.errors import ValidationError
from coursemart.core.middleware import get_client_ip
from coursemart.enrollments.service import FulfillmentError

from .dependencies import OrderServiceDep, PaymentVerifierDep
from .schemas import CreateOrderRequest, OrderResponse, WebhookAck
from .service import AlreadyEnrolledError


router = APIRouter(prefix="/v1/payments", tags=["payments"])


@router.post(
    "/orders",
    response_model=OrderResponse,
    summary="Create a payment order for a course",
    responses={200: {"description": "Order created, or student already enrolled"}},
)
async def create_order(
    data: CreateOrderRequest,
    order_service: OrderServiceDep,
    user: StudentUser,
) -> OrderResponse | ORJSONResponse:
    """Create a processor order for the course price.

    An already-enrolled student gets ``success: false`` with status 200
    and no order is created.
    """
    try:
        return await order_service.initiate_order(user.id, data.course_id)
    except AlreadyEnrolledError as e:
        return ORJSONResponse(
            status_code=status.HTTP_200_OK,
            content={"success": False, "message": e.message, "code": e.code},
        )


@router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Payment processor webhook",
)
async def payment_webhook(
    request: Request,
    verifier: PaymentVerifierDep,
) -> WebhookAck | ORJSONResponse:
    # Signature covers the raw bytes; never re-serialize before verifying
    raw_body = await request.body()
    signature = request.headers.get(get_settings().payment_signature_header)

    try:
        return await verifier.handle_webhook(
            raw_body, signature, client_ip=get_client_ip(request)
        )
    except ValidationError as e:
        return ORJSONResponse(
            status_code=e.status_code,
            content={"success": False, **e.to_dict()},
        )
    except FulfillmentError as e:
        return ORJSONResponse(
            status_code=e.status_code,
            content={"success": False, "message": e.message, "code": e.code},
        )
