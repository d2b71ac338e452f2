import uuid
from contextlib import contextmanager

import redis
from redis.exceptions import RedisError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from shop.domain.errors import ConflictError, TransientStoreError
from shop.utils.settings import REDIS_URL, CART_LOCK_TTL_SECONDS
from shop.utils.logging import get_logger

logger = get_logger(__name__)

#compare and delete in one step, so we never drop a lock somebody else took after ours expired
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(RedisError),
    )


class LockService:
    """
    -per-cart mutex (one mutating request per user cart at a time)
    -token per holder, release is atomic via lua
    -lock expires after ttl if the holder dies
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def cart_key(user_id: int) -> str:
        return f"cart:{user_id}:lock"

    @redis_retry()
    def acquire_cart_lock(self, user_id: int, token: str, ttl: int = CART_LOCK_TTL_SECONDS) -> bool:
        key = self.cart_key(user_id)
        logger.info(f"Acquire lock {key}")
        #SET cart:1:lock "<token>" NX EX 10
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_cart_lock(self, user_id: int, token: str) -> bool:
        key = self.cart_key(user_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def cart_lock(self, user_id: int):
        token = uuid.uuid4().hex
        try:
            acquired = self.acquire_cart_lock(user_id, token)
        except RedisError as e:
            logger.error(f"Redis unavailable, cannot lock cart of user {user_id}: {e}")
            raise TransientStoreError() from e

        if not acquired:
            logger.warning(f"Cart of user {user_id} is locked by another request")
            raise ConflictError("Cart is being modified by another request, please retry")
        try:
            yield
        finally:
            try:
                self.release_cart_lock(user_id, token)
            except RedisError as e:
                # ttl will clean it up
                logger.warning(f"Failed to release cart lock for user {user_id}: {e}")
