"""Tests for service wiring in ``init_services``."""

import json
from uuid import uuid4

from fastapi.testclient import TestClient

from coursemart.config import Settings
from coursemart.main import create_app, init_services
from coursemart.payments.service import PaymentVerifier
from coursemart.payments.signature import WebhookSigner


def signed_delivery(secret: str) -> tuple[bytes, dict]:
    body = json.dumps(
        {
            "event": "payment.captured",
            "payload": {
                "payment": {
                    "entity": {
                        "id": "pay_1",
                        "notes": {"courseId": str(uuid4()), "userId": str(uuid4())},
                    }
                }
            },
        }
    ).encode()
    settings = Settings()
    headers = {
        "Content-Type": "application/json",
        settings.payment_signature_header: WebhookSigner(secret).sign(body),
    }
    return body, headers


def test_webhook_secret_has_no_default() -> None:
    settings = Settings(_env_file=None, payment_webhook_secret=None)

    assert settings.payment_webhook_secret is None
    assert settings.webhook_configured is False


def test_no_verifier_without_webhook_secret(mock_session) -> None:
    app = create_app()
    settings = Settings(environment="production", payment_webhook_secret=None)

    init_services(app, mock_session, settings)

    assert getattr(app.state, "payment_verifier", None) is None
    assert app.state.order_service is not None


def test_webhook_unavailable_without_secret(mock_session) -> None:
    app = create_app()
    init_services(
        app,
        mock_session,
        Settings(environment="production", payment_webhook_secret=None),
    )
    body, headers = signed_delivery("dev-webhook-secret-change-in-production")

    client = TestClient(app)
    response = client.post("/v1/payments/webhook", content=body, headers=headers)

    assert response.status_code == 503


def test_verifier_uses_configured_secret(mock_session) -> None:
    app = create_app()
    settings = Settings(payment_webhook_secret="configured-secret")

    init_services(app, mock_session, settings)

    verifier = app.state.payment_verifier
    assert isinstance(verifier, PaymentVerifier)
    body, headers = signed_delivery("configured-secret")
    signature = headers[settings.payment_signature_header]
    assert verifier.signer.verify(body, signature)
    assert not verifier.signer.verify(body, WebhookSigner("other").sign(body))
