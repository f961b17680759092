# storefront/repos/checkout_repo.py
import redis
from pydantic import ValidationError

from storefront.domain.checkout import CheckoutState
from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import CHECKOUT_TTL_SECONDS, REDIS_URL

logger = get_logger(__name__)


class CheckoutRepo:
    def __init__(self, client: redis.Redis | None = None, ttl: int = CHECKOUT_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def key(session_id: str) -> str:
        return f"checkout:{session_id}"

    @redis_retry()
    def load(self, session_id: str) -> CheckoutState | None:
        raw = self.redis.get(self.key(session_id))
        if not raw:
            return None
        try:
            return CheckoutState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable checkout state for session {session_id}: {e}")
            return None

    @redis_retry()
    def save(self, session_id: str, state: CheckoutState) -> None:
        self.redis.set(self.key(session_id), state.model_dump_json(), ex=self.ttl)

    @redis_retry()
    def clear(self, session_id: str) -> None:
        self.redis.delete(self.key(session_id))
