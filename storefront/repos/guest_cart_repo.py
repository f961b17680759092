# storefront/repos/guest_cart_repo.py
import json
from typing import Any, Dict, List

import redis

from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import GUEST_CART_TTL_SECONDS, REDIS_URL

logger = get_logger(__name__)

GuestEntry = Dict[str, Any]


def _clean(entry: Any) -> GuestEntry | None:
    #stored by older clients too, so anything off-shape is dropped
    if not isinstance(entry, dict):
        return None
    product_id = entry.get("product_id")
    quantity = entry.get("quantity")
    if product_id is None or product_id == "" or isinstance(product_id, (dict, list, bool)):
        return None
    if isinstance(quantity, bool):
        return None
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        return None
    if quantity < 1:
        return None
    return {"product_id": str(product_id), "quantity": quantity}


class GuestCartRepo:
    """
    Cart of a session without a signed in user.
    One key per session holding a json array of {product_id, quantity}.
    """

    def __init__(self, client: redis.Redis | None = None, ttl: int = GUEST_CART_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def key(session_id: str) -> str:
        return f"guest_cart:{session_id}"

    @redis_retry()
    def exists(self, session_id: str) -> bool:
        return self.redis.get(self.key(session_id)) is not None

    @redis_retry()
    def read(self, session_id: str) -> List[GuestEntry]:
        raw = self.redis.get(self.key(session_id))
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Guest cart for session {session_id} is not valid json, ignoring it")
            return []
        if not isinstance(parsed, list):
            logger.warning(f"Guest cart for session {session_id} is not a list, ignoring it")
            return []

        entries = []
        for item in parsed:
            cleaned = _clean(item)
            if cleaned is None:
                logger.warning(f"Skipping malformed guest cart entry {item!r}")
                continue
            entries.append(cleaned)
        return entries

    @redis_retry()
    def write(self, session_id: str, entries: List[GuestEntry]) -> None:
        self.redis.set(self.key(session_id), json.dumps(entries), ex=self.ttl)

    @redis_retry()
    def clear(self, session_id: str) -> None:
        self.redis.delete(self.key(session_id))
