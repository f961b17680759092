# storefront/services/webhook_service.py
import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any, Dict

from storefront.domain.errors import WebhookConfigError, WebhookSignatureError
from storefront.repos.gateway import NO_ROWS, DataGateway
from storefront.services.auth_client import SupabaseAuthClient
from storefront.utils.logging import get_logger
from storefront.utils.settings import PAYSTACK_SECRET_KEY

logger = get_logger(__name__)


def sign(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


class WebhookService:
    """
    Paystack charge notifications.

    The client writes the order as pending right after the popup closes,
    this moves it to processing once Paystack confirms the charge.
    """

    def __init__(self, gateway: DataGateway, auth_client: SupabaseAuthClient, secret: str | None = None):
        self.gateway = gateway
        self.auth_client = auth_client
        self.secret = secret if secret is not None else PAYSTACK_SECRET_KEY

    def verify(self, body: bytes, signature: str | None):
        if not self.secret:
            logger.error("Missing PAYSTACK_SECRET_KEY")
            raise WebhookConfigError("Server configuration error: Missing Paystack secret key")
        if not signature:
            raise WebhookSignatureError("Missing signature")
        if not hmac.compare_digest(sign(self.secret, body), signature):
            logger.error("Invalid webhook signature")
            raise WebhookSignatureError("Invalid signature")

    def handle(self, body: bytes, signature: str | None) -> Dict[str, Any]:
        self.verify(body, signature)

        event = json.loads(body)
        logger.info(f"Received Paystack event: {event.get('event')}")

        if event.get("event") != "charge.success":
            return {"message": "Event ignored"}

        data = event.get("data") or {}
        if data.get("status") != "success":
            logger.info(f"Payment not successful, status: {data.get('status')}")
            return {"message": "Payment not successful"}

        reference = data.get("reference")
        existing = self.gateway.select("orders", {"payment_reference": reference}, single=True)
        if existing.error and existing.error.code != NO_ROWS:
            logger.error(f"Error checking order for {reference}: {existing.error}")
            raise RuntimeError(existing.error.message)

        if existing.ok:
            return self._confirm_existing(existing.data)

        email = (data.get("customer") or {}).get("email")
        return self._confirm_by_customer(reference, email)

    def _confirm_existing(self, order: Dict[str, Any]) -> Dict[str, Any]:
        if order["status"] != "pending":
            logger.info(f"Order already processed: {order['id']}")
            return {"message": "Order already processed", "order_id": order["id"]}

        result = self.gateway.update(
            "orders",
            {"status": "processing", "updated_at": datetime.now(timezone.utc)},
            {"id": order["id"]},
        )
        if result.error:
            logger.error(f"Error updating order {order['id']}: {result.error}")
            raise RuntimeError(result.error.message)

        logger.info(f"Order updated to processing: {order['id']}")
        return {"message": "Order updated successfully", "order_id": order["id"], "status": "processing"}

    def _confirm_by_customer(self, reference: str, email: str | None) -> Dict[str, Any]:
        #the webhook can arrive before the client wrote the order with this reference
        pending = self.gateway.select(
            "orders", {"status": "pending"}, order_by=[("created_at", True)], limit=5,
        )
        if pending.error:
            logger.error(f"Error finding pending orders: {pending.error}")

        if pending.ok and pending.data and email:
            user = self.auth_client.find_user_by_email(email)
            match = next((o for o in pending.data if user and o.get("user_id") == user.id), None)
            if match:
                result = self.gateway.update(
                    "orders",
                    {
                        "payment_reference": reference,
                        "status": "processing",
                        "updated_at": datetime.now(timezone.utc),
                    },
                    {"id": match["id"]},
                )
                if result.ok:
                    logger.info(f"Order updated with payment reference: {match['id']}")
                    return {"message": "Order updated successfully", "order_id": match["id"]}
                logger.error(f"Error updating order {match['id']}: {result.error}")

        logger.info(f"No matching order found for payment reference: {reference}")
        return {
            "message": "Webhook received but no matching order found. Order will be created client-side.",
            "reference": reference,
        }
