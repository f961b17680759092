import json
from decimal import Decimal

import pytest

from storefront.domain.errors import WebhookConfigError, WebhookSignatureError
from storefront.services.webhook_service import WebhookService, sign

SECRET = "sk_test_secret"


@pytest.fixture()
def webhooks(gateway, auth_client):
    return WebhookService(gateway, auth_client, secret=SECRET)


@pytest.fixture()
def add_order(gateway):
    def _add(order_number, status="pending", payment_reference=None, user_id=None):
        return gateway.inner.insert(
            "orders",
            {
                "user_id": user_id,
                "order_number": order_number,
                "total_amount": Decimal("14800"),
                "status": status,
                "shipping_address": {"name": "Ada Obi"},
                "payment_reference": payment_reference,
            },
            single=True,
        ).data

    return _add


def _event(reference, status="success", event="charge.success", email="ada@example.com"):
    body = json.dumps({
        "event": event,
        "data": {"reference": reference, "status": status, "customer": {"email": email}},
    }).encode()
    return body, sign(SECRET, body)


def _order(gateway, order_id):
    return gateway.inner.select("orders", {"id": order_id}, single=True).data


class TestSignature:
    def test_missing_signature(self, webhooks):
        body, _ = _event("DLX-1")

        with pytest.raises(WebhookSignatureError, match="Missing signature"):
            webhooks.handle(body, None)

    def test_tampered_body(self, webhooks):
        body, signature = _event("DLX-1")

        with pytest.raises(WebhookSignatureError, match="Invalid signature"):
            webhooks.handle(body.replace(b"DLX-1", b"DLX-2"), signature)

    def test_missing_secret(self, gateway, auth_client):
        body, signature = _event("DLX-1")

        with pytest.raises(WebhookConfigError):
            WebhookService(gateway, auth_client, secret="").handle(body, signature)


class TestEvents:
    def test_other_events_are_ignored(self, webhooks):
        assert webhooks.handle(*_event("DLX-1", event="transfer.success")) == {"message": "Event ignored"}

    def test_failed_charge(self, webhooks):
        assert webhooks.handle(*_event("DLX-1", status="failed")) == {"message": "Payment not successful"}

    def test_pending_order_moves_to_processing(self, webhooks, gateway, add_order):
        order = add_order("ORD-2026-000001", payment_reference="DLX-1")

        result = webhooks.handle(*_event("DLX-1"))

        assert result["status"] == "processing"
        assert _order(gateway, order["id"])["status"] == "processing"
        assert _order(gateway, order["id"])["updated_at"] is not None

    def test_processed_order_is_left_alone(self, webhooks, gateway, add_order):
        order = add_order("ORD-2026-000001", status="shipped", payment_reference="DLX-1")

        result = webhooks.handle(*_event("DLX-1"))

        assert result["message"] == "Order already processed"
        assert _order(gateway, order["id"])["status"] == "shipped"

    def test_matches_pending_order_by_customer(self, webhooks, gateway, add_order):
        order = add_order("ORD-2026-000001", user_id="user-001")

        result = webhooks.handle(*_event("DLX-9"))

        assert result == {"message": "Order updated successfully", "order_id": order["id"]}
        stored = _order(gateway, order["id"])
        assert stored["payment_reference"] == "DLX-9"
        assert stored["status"] == "processing"

    def test_no_matching_order(self, webhooks, add_order):
        add_order("ORD-2026-000001", user_id="someone-else")

        result = webhooks.handle(*_event("DLX-9"))

        assert "no matching order found" in result["message"]
        assert result["reference"] == "DLX-9"
