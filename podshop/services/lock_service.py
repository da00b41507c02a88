import redis
from podshop.utils.retry import redis_retry
from podshop.utils.settings import REDIS_URL
from podshop.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje atomowo przez lua, skrypt dziala jako jedna nieprzerywalna operacja
#nie mozna wcisnac sie miedzy GET a DEL, wiec tu jest get + porownanie + del wszystko naraz


def catalog_lock_key(base_title: str) -> str:
    return f"catalog:title:{base_title}:lock"


def order_lock_key(order_id: int) -> str:
    return f"order:{order_id}:fanout:lock"


class LockService:
    """
    -lock per tytul produktu przy reconcyliacji katalogu
    -lock per zamowienie przy fan-out
    -zwalnianie tylko przez wlasciciela (lua)
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def acquire(self, key: str, owner: str, ttl: int) -> bool:
        logger.info(f"Acquire lock {key} for {owner}")
        #SET key owner NX EX ttl
        return bool(
            self.redis.set(
                name=key,
                value=owner,
                nx=True, #jak klucz istnieje to nic nie rob i False
                ex=ttl, #wygasa sam, nie trzeba recznie czyscic po crashu workera
            )
        )

    @redis_retry()
    def release(self, key: str, owner: str) -> bool:
        logger.info(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)

    def close(self):
        self.redis.close()
