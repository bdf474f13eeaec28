"""
Redis Caching Module
Best-effort cache-aside storage for serialized feature flags.

Every operation swallows and logs Redis failures: a broken cache turns into
misses and no-ops, never into a failed request.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import redis.asyncio as redis

from flagstream.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class Cache(Protocol):
	async def get(self, key: str) -> Optional[str]: ...

	async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None: ...

	async def delete(self, key: str) -> None: ...

	async def ping(self) -> bool: ...

	async def stats(self) -> Dict[str, Any]: ...

	async def close(self) -> None: ...


class NullCache:
	"""Cache that stores nothing. Used when caching is disabled."""

	async def get(self, key: str) -> Optional[str]:
		return None

	async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
		return None

	async def delete(self, key: str) -> None:
		return None

	async def ping(self) -> bool:
		return False

	async def stats(self) -> Dict[str, Any]:
		return {'enabled': False, 'connected': False}

	async def close(self) -> None:
		return None


class RedisCache:
	"""Redis cache wrapper that degrades to a miss on any error."""

	def __init__(
		self,
		redis_url: Optional[str] = None,
		ttl_seconds: int = DEFAULT_TTL_SECONDS,
		client: Optional[redis.Redis] = None,
	):
		self.ttl_seconds = ttl_seconds
		self.redis: Optional[redis.Redis] = client

		if self.redis is None and redis_url:
			try:
				self.redis = redis.from_url(
					redis_url,
					encoding='utf-8',
					decode_responses=True,
					socket_connect_timeout=5,
					socket_timeout=5,
				)
				logger.info('Redis cache configured for %s', redis_url)
			except Exception as e:
				logger.error('Failed to configure Redis cache: %s', e)

	async def get(self, key: str) -> Optional[str]:
		"""Get raw string value."""
		if self.redis is None:
			return None
		try:
			value = await self.redis.get(key)
		except Exception as e:
			logger.error('Redis get error for %s: %s', key, e)
			return None
		logger.debug('Cache %s: %s', 'HIT' if value is not None else 'MISS', key)
		return value

	async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
		"""Set raw string value with TTL."""
		if self.redis is None:
			return
		try:
			await self.redis.set(key, value, ex=ttl_seconds or self.ttl_seconds)
		except Exception as e:
			logger.error('Redis set error for %s: %s', key, e)

	async def delete(self, key: str) -> None:
		"""Delete a key."""
		if self.redis is None:
			return
		try:
			await self.redis.delete(key)
		except Exception as e:
			logger.error('Redis delete error for %s: %s', key, e)

	async def ping(self) -> bool:
		if self.redis is None:
			return False
		try:
			return bool(await self.redis.ping())
		except Exception as e:
			logger.warning('Redis ping failed: %s', e)
			return False

	async def stats(self) -> Dict[str, Any]:
		return {'enabled': self.redis is not None, 'connected': await self.ping()}

	async def close(self) -> None:
		if self.redis is None:
			return
		try:
			await self.redis.aclose()
		except Exception as e:
			logger.warning('Redis close error: %s', e)
		finally:
			self.redis = None


def build_cache(settings: Settings) -> Cache:
	"""Pick the cache implementation from configuration."""
	if not settings.use_cache:
		logger.info('Cache disabled, serving reads from the store only')
		return NullCache()
	return RedisCache(settings.redis_url, ttl_seconds=settings.cache_ttl_seconds)
