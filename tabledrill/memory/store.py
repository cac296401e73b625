import os
from typing import Optional, Dict, Protocol

from tabledrill.utils import get_logger

LOG = get_logger()

SELECTION_MEMORY_BACKEND = os.getenv('SELECTION_MEMORY_BACKEND', 'redis').lower()
SELECTION_MEMORY_TTL = int(os.getenv('SELECTION_MEMORY_TTL', '0'))
REDIS_URL = os.getenv('REDIS_URL', None)


class KeyValueStore(Protocol):
    backend: str

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> bool:
        ...

    def ping(self) -> bool:
        ...


class InMemoryStore:
    backend = 'memory'

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    def ping(self) -> bool:
        return True


class RedisStore:
    backend = 'redis'

    def __init__(self, client=None, ttl: Optional[int] = None):
        self.ttl = SELECTION_MEMORY_TTL if ttl is None else ttl
        self.available = False
        self._client = client
        try:
            if self._client is None:
                import redis
                if REDIS_URL:
                    self._client = redis.from_url(REDIS_URL, decode_responses=True)
                else:
                    self._client = redis.Redis(
                        host=os.getenv('REDIS_HOST', 'redis'),
                        port=int(os.getenv('REDIS_PORT', '6379')),
                        password=os.getenv('REDIS_PASSWORD') or None,
                        socket_timeout=3,
                        decode_responses=True,
                    )
            self._client.ping()
            self.available = True
            LOG.info('selection_memory_redis_connected')
        except Exception as e:
            LOG.warning('selection_memory_redis_unavailable', extra={'error': str(e)})

    def get(self, key: str) -> Optional[str]:
        if not self.available:
            return None
        try:
            val = self._client.get(key)
        except Exception as e:
            LOG.warning('selection_memory_get_failed', extra={'key': key, 'error': str(e)})
            return None
        if isinstance(val, bytes):
            val = val.decode('utf-8', errors='replace')
        return val

    def set(self, key: str, value: str) -> bool:
        if not self.available:
            return False
        try:
            if self.ttl > 0:
                self._client.set(key, value, ex=self.ttl)
            else:
                self._client.set(key, value)
            return True
        except Exception as e:
            LOG.warning('selection_memory_set_failed', extra={'key': key, 'error': str(e)})
            return False

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except Exception:
            return False


def create_store(backend: Optional[str] = None) -> KeyValueStore:
    backend = (backend or SELECTION_MEMORY_BACKEND).lower()
    if backend == 'memory':
        LOG.info('selection_memory_in_memory')
        return InMemoryStore()
    store = RedisStore()
    if store.available:
        return store
    LOG.warning('selection_memory_fallback_in_memory')
    return InMemoryStore()
