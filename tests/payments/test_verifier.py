"""Tests for webhook verification and dispatch."""

import json
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from coursemart.core.errors import ValidationError
from coursemart.enrollments.service import FulfillmentError, FulfillmentResult
from coursemart.payments.service import InvalidSignatureError, PaymentVerifier
from coursemart.payments.signature import WebhookSigner


@pytest.fixture
def signer() -> WebhookSigner:
    return WebhookSigner("verifier-secret")


@pytest.fixture
def fulfiller():
    fulfiller = Mock()

    async def fulfill(course_id, user_id):
        return FulfillmentResult(
            course_id=course_id,
            user_id=user_id,
            progress_record_id=uuid4(),
            already_enrolled=False,
        )

    fulfiller.fulfill = AsyncMock(side_effect=fulfill)
    return fulfiller


@pytest.fixture
def verifier(signer, fulfiller) -> PaymentVerifier:
    return PaymentVerifier(signer=signer, fulfiller=fulfiller)


def webhook_body(course_id, user_id, event="payment.captured", payment_id="pay_1"):
    payload = {
        "entity": "event",
        "event": event,
        "payload": {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "order_id": "order_1",
                    "amount": 50000,
                    "notes": {"courseId": str(course_id), "userId": str(user_id)},
                }
            }
        },
    }
    return json.dumps(payload, separators=(",", ":")).encode()


class TestHandleWebhook:
    @pytest.mark.asyncio
    async def test_rewritten_course_id_is_rejected(
        self, verifier, signer, fulfiller
    ) -> None:
        paid_course, other_course, user_id = uuid4(), uuid4(), uuid4()
        body = webhook_body(paid_course, user_id)
        signature = signer.sign(body)
        forged = body.replace(str(paid_course).encode(), str(other_course).encode())

        with pytest.raises(InvalidSignatureError):
            await verifier.handle_webhook(forged, signature)

        fulfiller.fulfill.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_valid_delivery_fulfills(self, verifier, signer, fulfiller) -> None:
        course_id, user_id = uuid4(), uuid4()
        body = webhook_body(course_id, user_id)

        ack = await verifier.handle_webhook(body, signer.sign(body))

        assert ack.success is True
        assert ack.already_enrolled is False
        fulfiller.fulfill.assert_awaited_once_with(course_id, user_id)

    @pytest.mark.asyncio
    async def test_bad_signature_touches_nothing(self, verifier, fulfiller) -> None:
        body = webhook_body(uuid4(), uuid4())

        with pytest.raises(InvalidSignatureError) as exc_info:
            await verifier.handle_webhook(body, "0" * 64, client_ip="203.0.113.9")

        assert exc_info.value.status_code == 400
        fulfiller.fulfill.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_signature(self, verifier, fulfiller) -> None:
        with pytest.raises(InvalidSignatureError):
            await verifier.handle_webhook(webhook_body(uuid4(), uuid4()), None)
        fulfiller.fulfill.assert_not_called()

    @pytest.mark.asyncio
    async def test_signed_but_malformed_reports_every_field(
        self, verifier, signer, fulfiller
    ) -> None:
        body = json.dumps(
            {
                "payload": {
                    "payment": {
                        "entity": {"id": "pay_1", "notes": {"courseId": "nope"}}
                    }
                }
            }
        ).encode()

        with pytest.raises(ValidationError) as exc_info:
            await verifier.handle_webhook(body, signer.sign(body))

        fields = {e["field"] for e in exc_info.value.errors}
        assert "payload.payment.entity.notes.courseId" in fields
        assert "payload.payment.entity.notes.userId" in fields
        fulfiller.fulfill.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_fulfilling_event_is_acknowledged(
        self, verifier, signer, fulfiller
    ) -> None:
        body = webhook_body(uuid4(), uuid4(), event="payment.failed")

        ack = await verifier.handle_webhook(body, signer.sign(body))

        assert ack.success is True
        assert "ignored" in ack.message
        fulfiller.fulfill.assert_not_called()

    @pytest.mark.asyncio
    async def test_fulfillment_error_propagates(
        self, verifier, signer, fulfiller
    ) -> None:
        fulfiller.fulfill.side_effect = FulfillmentError()
        body = webhook_body(uuid4(), uuid4())

        with pytest.raises(FulfillmentError):
            await verifier.handle_webhook(body, signer.sign(body))


class TestDedupeCache:
    @pytest.fixture
    def redis_client(self):
        client = AsyncMock()
        client.exists = AsyncMock(return_value=0)
        client.set = AsyncMock(return_value=True)
        return client

    @pytest.mark.asyncio
    async def test_processed_payment_is_remembered(
        self, signer, fulfiller, redis_client
    ) -> None:
        verifier = PaymentVerifier(
            signer, fulfiller, redis_client=redis_client, dedupe_ttl_seconds=60
        )
        body = webhook_body(uuid4(), uuid4(), payment_id="pay_42")

        await verifier.handle_webhook(body, signer.sign(body))

        redis_client.set.assert_awaited_once_with(
            "webhook:processed:pay_42", "1", ex=60
        )

    @pytest.mark.asyncio
    async def test_seen_payment_skips_fulfillment(
        self, signer, fulfiller, redis_client
    ) -> None:
        redis_client.exists.return_value = 1
        verifier = PaymentVerifier(signer, fulfiller, redis_client=redis_client)
        body = webhook_body(uuid4(), uuid4())

        ack = await verifier.handle_webhook(body, signer.sign(body))

        assert ack.already_enrolled is True
        fulfiller.fulfill.assert_not_called()

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_fulfiller(
        self, signer, fulfiller, redis_client
    ) -> None:
        redis_client.exists.side_effect = RedisConnectionError("redis down")
        redis_client.set.side_effect = RedisConnectionError("redis down")
        verifier = PaymentVerifier(signer, fulfiller, redis_client=redis_client)
        body = webhook_body(uuid4(), uuid4())

        ack = await verifier.handle_webhook(body, signer.sign(body))

        assert ack.success is True
        fulfiller.fulfill.assert_awaited_once()
