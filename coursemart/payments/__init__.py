"""Payments module.

Provides:
- Order creation with the payment processor
- Webhook signature verification
- Handing verified purchases to enrollment fulfillment
"""

from .gateway import PaymentGateway, PaymentOrder
from .service import OrderService, PaymentVerifier
from .signature import WebhookSigner


__all__ = [
    "OrderService",
    "PaymentGateway",
    "PaymentOrder",
    "PaymentVerifier",
    "WebhookSigner",
]
