"""
Cache em memória com TTL, por processo.

Chaves prefixadas pelo tenant ("{tenant_id}:...") para permitir limpar
tudo de uma loja com `clear_tenant`. Entradas expiradas são removidas
na leitura (lazy) ou em `cleanup()`.
"""

import logging
import re
import threading
import time
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 60


class TTLCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_pattern(self, pattern: str) -> int:
        """Remove as chaves que casam com a regex; retorna quantas saíram."""
        regex = re.compile(pattern)
        with self._lock:
            keys = [k for k in self._entries if regex.search(k)]
            for k in keys:
                del self._entries[k]
        return len(keys)

    def clear_tenant(self, tenant_id: int | str) -> int:
        removed = self.delete_pattern(f"^{re.escape(str(tenant_id))}:")
        if removed:
            logger.debug(f"Cache do tenant {tenant_id} limpo ({removed} chaves)")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_set(self, key: str, fetcher: Callable[[], T], ttl_seconds: int = DEFAULT_TTL_SECONDS) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = fetcher()
        self.set(key, value, ttl_seconds)
        return value

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, exp) in self._entries.items() if now > exp]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


# Singleton do processo
cache = TTLCache()


class CacheKeys:
    @staticmethod
    def analytics_overview(tenant_id: int) -> str:
        return f"{tenant_id}:analytics:overview"

    @staticmethod
    def analytics_sales(tenant_id: int, params: str) -> str:
        return f"{tenant_id}:analytics:sales:{params}"

    @staticmethod
    def recent_orders(tenant_id: int) -> str:
        return f"{tenant_id}:orders:recent"

    @staticmethod
    def low_stock_products(tenant_id: int) -> str:
        return f"{tenant_id}:products:lowstock"

    @staticmethod
    def top_products(tenant_id: int) -> str:
        return f"{tenant_id}:products:top"

    @staticmethod
    def tenant_by_subdomain(subdomain: str) -> str:
        # Global (não prefixado por tenant)
        return f"tenant:subdomain:{subdomain}"

    @staticmethod
    def tenant_by_domain(domain: str) -> str:
        return f"tenant:domain:{domain}"

    @staticmethod
    def notification_digest(tenant_id: int) -> str:
        # Fora do prefixo da loja: sobrevive a clear_tenant
        return f"notifications:digest:{tenant_id}"


cache_keys = CacheKeys()
