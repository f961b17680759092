import json
from decimal import Decimal

import pytest
import requests

from storefront.repos.gateway import NETWORK_ERROR, NO_ROWS
from storefront.repos.rest_gateway import RestGateway


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._body = body
        self.content = json.dumps(body).encode() if body is not None else b""

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._body


class HtmlResponse(FakeResponse):
    def __init__(self, status_code=502, reason="Bad Gateway"):
        super().__init__(status_code=status_code, reason=reason)
        self.content = b"<html><body>502 Bad Gateway</body></html>"

    def json(self):
        raise requests.exceptions.JSONDecodeError("Expecting value", self.content.decode(), 0)


class FakeHttp:
    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.sent = []

    def request(self, method, url, params=None, data=None, headers=None, timeout=None):
        self.sent.append({"method": method, "url": url, "params": params, "data": data, "headers": headers})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _gateway(*responses, token="user-token"):
    http = FakeHttp(*responses)
    return RestGateway(base_url="https://db.test/", api_key="anon", access_token=token, http=http), http


def test_user_token_is_sent():
    _, http = _gateway()

    assert http.headers["apikey"] == "anon"
    assert http.headers["Authorization"] == "Bearer user-token"


def test_select_builds_postgrest_query():
    gateway, http = _gateway(FakeResponse(body=[{"id": "L1"}]))

    result = gateway.select("cart_items", {"user_id": "u1", "deleted_at": None},
                            order_by=[("created_at", True)], limit=5)

    assert result.data == [{"id": "L1"}]
    assert http.sent[0]["url"] == "https://db.test/rest/v1/cart_items"
    assert http.sent[0]["params"] == {
        "user_id": "eq.u1",
        "deleted_at": "is.null",
        "select": "*",
        "order": "created_at.desc",
        "limit": "5",
    }


def test_single_without_rows():
    gateway, _ = _gateway(FakeResponse(body=[]))

    assert gateway.select("products", {"id": "P9"}, single=True).error.code == NO_ROWS


def test_upsert_merges_duplicates():
    gateway, http = _gateway(FakeResponse(status_code=201, body=[{"id": "L1", "quantity": 3}]))

    result = gateway.upsert("cart_items", {"user_id": "u1", "product_id": "P1", "quantity": 3},
                            on_conflict=("user_id", "product_id"))

    assert result.data == {"id": "L1", "quantity": 3}
    sent = http.sent[0]
    assert sent["params"] == {"on_conflict": "user_id,product_id"}
    assert sent["headers"]["Prefer"] == "return=representation,resolution=merge-duplicates"


def test_decimals_are_sent_as_strings():
    gateway, http = _gateway(FakeResponse(status_code=201, body=[{"id": "O1"}]))

    gateway.insert("orders", {"total_amount": Decimal("14800.00")}, single=True)

    assert json.loads(http.sent[0]["data"]) == {"total_amount": "14800.00"}


def test_error_body_becomes_gateway_error():
    gateway, _ = _gateway(FakeResponse(
        status_code=409, reason="Conflict",
        body={"code": "23505", "message": "duplicate key value violates unique constraint"},
    ))

    result = gateway.insert("shipping_addresses", {"user_id": "u1"})

    assert result.error.is_duplicate
    assert result.error.message == "duplicate key value violates unique constraint"


def test_rpc_returns_scalar():
    gateway, http = _gateway(FakeResponse(body="ORD-2026-000042"))

    result = gateway.rpc("generate_order_number")

    assert result.data == "ORD-2026-000042"
    assert http.sent[0]["url"].endswith("/rpc/generate_order_number")


@pytest.mark.parametrize("error", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_transport_errors(error):
    gateway, _ = _gateway(error, error, error)

    assert gateway.select("products").error.code == NETWORK_ERROR


def test_html_error_page_becomes_gateway_error():
    gateway, _ = _gateway(HtmlResponse())

    result = gateway.select("cart_items", {"user_id": "u1"})

    assert result.data is None
    assert result.error.code == "502"
    assert result.error.message == "Bad Gateway"
