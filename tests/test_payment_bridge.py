from decimal import Decimal

import pytest
import requests

from storefront.domain.errors import PaymentBridgeError
from storefront.services import payment_bridge
from storefront.services.payment_bridge import PaystackBridge


class PaystackResponse:
    def __init__(self, body=None, status_code=200, raw=None):
        self.status_code = status_code
        self._body = body
        self.content = raw if raw is not None else b"{}"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise requests.exceptions.JSONDecodeError("Expecting value", self.content.decode(), 0)
        return self._body


@pytest.fixture()
def paystack(monkeypatch):
    sent = []
    replies = []

    def request(method, url, **kwargs):
        sent.append({"method": method, "url": url, **kwargs})
        return replies.pop(0)

    monkeypatch.setattr(payment_bridge.requests, "request", request)
    bridge = PaystackBridge(secret_key="sk_test_secret", base_url="https://paystack.test")
    return bridge, sent, replies


def test_initialize_sends_kobo(paystack):
    bridge, sent, replies = paystack
    replies.append(PaystackResponse({
        "status": True,
        "data": {"reference": "DLX-1", "authorization_url": "https://checkout.test/abc", "access_code": "abc"},
    }))

    init = bridge.initialize("ada@example.com", Decimal("14800.00"), "DLX-1", {})

    assert init.authorization_url == "https://checkout.test/abc"
    assert sent[0]["json"]["amount"] == 1480000
    assert sent[0]["headers"]["Authorization"] == "Bearer sk_test_secret"


def test_settle_runs_one_callback(paystack):
    bridge, _, replies = paystack
    replies.append(PaystackResponse({"status": True, "data": {"status": "success", "reference": "DLX-1"}}))
    replies.append(PaystackResponse({"status": True, "data": {"status": "abandoned"}}))

    assert bridge.settle("DLX-1", lambda ref: ("paid", ref), lambda: "cancelled") == ("paid", "DLX-1")
    assert bridge.settle("DLX-2", lambda ref: ("paid", ref), lambda: "cancelled") == "cancelled"


def test_unfinished_payment_runs_no_callback(paystack):
    bridge, _, replies = paystack
    replies.append(PaystackResponse({"status": True, "data": {"status": "ongoing"}}))

    with pytest.raises(PaymentBridgeError):
        bridge.settle("DLX-1", lambda ref: pytest.fail("paid"), lambda: pytest.fail("cancelled"))


def test_html_error_page(paystack):
    bridge, _, replies = paystack
    replies.append(PaystackResponse(status_code=502, raw=b"<html>Bad Gateway</html>"))

    with pytest.raises(PaymentBridgeError, match="An error occurred while processing payment"):
        bridge.initialize("ada@example.com", Decimal("100"), "DLX-1", {})
