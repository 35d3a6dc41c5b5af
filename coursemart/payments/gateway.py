"""Payment processor REST client (Razorpay-compatible orders API)."""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from coursemart.core.errors import UpstreamError


logger = structlog.get_logger(__name__)


class PaymentProviderUnavailableError(UpstreamError):
    """Processor unreachable, timed out or rejected the call. Retryable."""

    def __init__(self, message: str = "Payment provider is unavailable, try again"):
        super().__init__(message, "payment_provider_unavailable")


@dataclass(frozen=True)
class PaymentOrder:
    """Order held by the processor; nothing is persisted locally."""

    id: str
    amount: int
    currency: str
    receipt: str
    notes: dict[str, str]

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PaymentOrder":
        return cls(
            id=data["id"],
            amount=int(data["amount"]),
            currency=data["currency"],
            receipt=data.get("receipt") or "",
            notes=dict(data.get("notes") or {}),
        )


class PaymentGateway:
    """Creates orders with the processor over HTTPS basic auth."""

    def __init__(
        self,
        base_url: str,
        key_id: str | None,
        key_secret: str | None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._auth = (key_id or "", key_secret or "")
        self.timeout = timeout
        self._transport = transport

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> PaymentOrder:
        """Create an order for ``amount`` minor currency units.

        Raises:
            PaymentProviderUnavailableError: On timeout, transport error or a
                non-2xx answer from the processor
        """
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, auth=self._auth, transport=self._transport
            ) as client:
                response = await client.post(f"{self.base_url}/orders", json=payload)
        except httpx.TimeoutException as e:
            logger.error("payment_order_timeout", error=str(e), receipt=receipt)
            raise PaymentProviderUnavailableError from e
        except httpx.RequestError as e:
            logger.error("payment_order_request_error", error=str(e), receipt=receipt)
            raise PaymentProviderUnavailableError from e

        if not response.is_success:
            logger.error(
                "payment_order_rejected",
                status_code=response.status_code,
                response_text=response.text[:500],
                receipt=receipt,
            )
            raise PaymentProviderUnavailableError

        order = PaymentOrder.from_api(response.json())
        logger.info(
            "payment_order_created",
            order_id=order.id,
            amount=order.amount,
            currency=order.currency,
        )
        return order
