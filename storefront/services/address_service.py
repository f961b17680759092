# storefront/services/address_service.py
from typing import Any, Dict, List

from storefront.domain.checkout import ShippingInfo
from storefront.repos.gateway import DataGateway, GatewayResult
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class AddressService:
    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    def list_addresses(self, user_id: str) -> GatewayResult:
        """Saved addresses, the default one first, then newest first."""
        return self.gateway.select(
            "shipping_addresses",
            {"user_id": user_id},
            order_by=[("is_default", True), ("created_at", True)],
        )

    def get_address(self, user_id: str, address_id: str) -> GatewayResult:
        return self.gateway.select(
            "shipping_addresses",
            {"id": address_id, "user_id": user_id},
            single=True,
        )

    def save_address(self, user_id: str, info: ShippingInfo, make_default: bool) -> GatewayResult:
        result = self.gateway.insert(
            "shipping_addresses",
            {
                "user_id": user_id,
                "first_name": info.first_name,
                "last_name": info.last_name,
                "phone": info.phone or None,
                "address": info.address,
                "city": info.city,
                "state": info.state,
                "zip_code": info.zip_code,
                "country": info.country,
                "is_default": make_default,
            },
            single=True,
        )
        if result.error:
            if result.error.is_duplicate:
                logger.info(f"Address for user {user_id} already exists")
            else:
                logger.error(f"Error saving address for user {user_id}: {result.error}")
        else:
            logger.info(f"Saved address {result.data['id']} for user {user_id} (default={make_default})")
        return result


def address_to_shipping(row: Dict[str, Any], email: str) -> ShippingInfo:
    return ShippingInfo(
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        email=email,
        phone=row.get("phone") or "",
        address=row.get("address") or "",
        city=row.get("city") or "",
        state=row.get("state") or "",
        zip_code=row.get("zip_code") or "",
        country=row.get("country") or ShippingInfo().country,
    )


def default_address(rows: List[Dict[str, Any]]) -> Dict[str, Any] | None:
    return next((row for row in rows if row.get("is_default")), None)
