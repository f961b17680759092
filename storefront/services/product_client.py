# storefront/services/product_client.py
from storefront.domain.cart import Product
from storefront.repos.gateway import NO_ROWS, DataGateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    def fetch_product(self, product_id: str) -> Product | None:
        result = self.gateway.select("products", {"id": product_id}, single=True)

        if result.error:
            if result.error.code == NO_ROWS:
                logger.info(f"Product {product_id} no longer exists")
            else:
                logger.warning(f"Could not load product {product_id}: {result.error}")
            return None

        return Product.from_row(result.data)
