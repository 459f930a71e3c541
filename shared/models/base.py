"""
Base abstract interfaces shared across services
"""
from abc import ABC, abstractmethod
from typing import Optional, TypeVar, Generic


K = TypeVar('K')
V = TypeVar('V')


class ICacheProvider(ABC, Generic[K, V]):
    """Abstract interface for short-lived key/value caching"""

    @abstractmethod
    async def get(self, key: K) -> Optional[V]:
        """Get value from cache, None when missing or expired"""
        pass

    @abstractmethod
    async def set(self, key: K, value: V, ttl: Optional[int] = None) -> None:
        """Set value in cache with optional TTL (seconds)"""
        pass

    @abstractmethod
    async def delete(self, key: K) -> None:
        """Delete from cache"""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Clear cache"""
        pass

    async def close(self) -> None:
        """Release resources held by the cache"""
        pass
