# storefront/services/lock_service.py
import uuid

import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import Settings, settings as default_settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nikt nie wcisnie sie miedzy GET a DEL
#wiec zwalniamy tylko wlasny lock, nawet jesli nasz TTL juz minal i lock przejal ktos inny


class LockService:
    """
    -blokada na czas sweepa porzuconych koszykow (jeden sweep naraz)
    -zwalnianie tylko przez wlasciciela tokenu
    """

    def __init__(self, url: str | None = None, settings: Settings | None = None):
        settings = settings or default_settings
        self.redis = redis.Redis.from_url(
            url or settings.redis_url,
            decode_responses=True,
        )

    @redis_retry()
    def acquire(self, key: str, ttl: int) -> str | None:
        token = uuid.uuid4().hex
        logger.info(f"Acquire lock {key}")
        #SET key token NX EX ttl
        acquired = self.redis.set(name=key, value=token, nx=True, ex=ttl)
        return token if acquired else None

    @redis_retry()
    def release(self, key: str, token: str) -> bool:
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
