"""FastAPI dependencies for payments."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import OrderService, PaymentVerifier


async def get_order_service(request: Request) -> OrderService:
    service = getattr(request.app.state, "order_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment service not available",
        )
    return service


async def get_payment_verifier(request: Request) -> PaymentVerifier:
    verifier = getattr(request.app.state, "payment_verifier", None)
    if verifier is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment service not available",
        )
    return verifier


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
PaymentVerifierDep = Annotated[PaymentVerifier, Depends(get_payment_verifier)]
