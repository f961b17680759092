# storefront/services/payment_bridge.py
import secrets
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, TypeVar

import requests
from requests import RequestException

from storefront.domain.errors import PaymentBridgeError
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    CURRENCY,
    HTTP_TIMEOUT_SECONDS,
    PAYSTACK_BASE_URL,
    PAYSTACK_CALLBACK_URL,
    PAYSTACK_SECRET_KEY,
)

logger = get_logger(__name__)

T = TypeVar("T")

# the popup is still open, neither callback may run yet
PENDING_STATUSES = {"ongoing", "pending", "queued", "processing"}


def generate_reference() -> str:
    return f"DLX-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


@dataclass(frozen=True)
class PaymentInit:
    reference: str
    authorization_url: str
    access_code: str = ""


class PaymentBridge:
    """
    Hosted payment page.

    ``initialize`` opens a transaction, ``settle`` later asks the provider
    how it ended and calls exactly one of ``on_success(reference)`` or
    ``on_cancel()``, returning what that callback returned.
    """

    def initialize(self, email: str, amount: Decimal, reference: str, metadata: Dict[str, Any]) -> PaymentInit:
        raise NotImplementedError

    def settle(self, reference: str, on_success: Callable[[str], T], on_cancel: Callable[[], T]) -> T:
        raise NotImplementedError


class PaystackBridge(PaymentBridge):
    def __init__(self, secret_key: str | None = None, base_url: str | None = None, timeout: int | None = None):
        self.secret_key = secret_key if secret_key is not None else PAYSTACK_SECRET_KEY
        self.base_url = (base_url or PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS

    @http_retry()
    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"Paystack {method} {url}")
        return requests.request(
            method,
            url,
            headers={"Authorization": f"Bearer {self.secret_key}"},
            timeout=self.timeout,
            **kwargs,
        )

    def _data(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = self._request(method, path, **kwargs)
        except RequestException as e:
            logger.error(f"Paystack unreachable: {e}")
            raise PaymentBridgeError("An error occurred while processing payment") from e

        try:
            body = resp.json() if resp.content else {}
        except ValueError as e:
            logger.error(f"Paystack {path} answered {resp.status_code} with a non-json body")
            raise PaymentBridgeError("An error occurred while processing payment") from e
        if not resp.ok or not body.get("status"):
            logger.error(f"Paystack {path} failed with {resp.status_code}: {body.get('message')}")
            raise PaymentBridgeError(body.get("message") or "An error occurred while processing payment")
        return body.get("data") or {}

    def initialize(self, email, amount, reference, metadata):
        payload = {
            "email": email,
            "amount": int((amount * 100).to_integral_value()),  # kobo
            "currency": CURRENCY,
            "reference": reference,
            "metadata": metadata,
        }
        if PAYSTACK_CALLBACK_URL:
            payload["callback_url"] = PAYSTACK_CALLBACK_URL

        data = self._data("POST", "/transaction/initialize", json=payload)
        return PaymentInit(
            reference=data.get("reference") or reference,
            authorization_url=data.get("authorization_url", ""),
            access_code=data.get("access_code", ""),
        )

    def settle(self, reference, on_success, on_cancel):
        data = self._data("GET", f"/transaction/verify/{reference}")
        status = data.get("status")
        logger.info(f"Payment {reference} ended with status {status}")
        if status == "success":
            return on_success(data.get("reference") or reference)
        if status in PENDING_STATUSES:
            raise PaymentBridgeError(f"Payment {reference} has not finished yet")
        return on_cancel()
