"""
Flag Repository: storage abstraction for feature flags

One repository hierarchy, parameterized by an injected cache. The base class
owns the cache-aside bookkeeping; backends only implement storage primitives.

  - find_by_key: cache hit returns without touching the store; a miss reads
    the store and caches present records.
  - every mutation invalidates the cached entry after the store write
    succeeds and before returning.

Backends:
  - SupabaseFlagRepository (PostgREST, production)
  - InMemoryFlagRepository (tests, local runs)

Usage:
    repo = SupabaseFlagRepository(client, cache=RedisCache(url))
    flag = await repo.find_by_key('dark-mode')
    await repo.set_override('dark-mode', OverrideType.USER, 'u1', True)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from flagstream.core.cache import Cache, NullCache
from flagstream.core.exceptions import ConflictError, NotFoundError, StorageError
from flagstream.models.flag import FeatureFlag, FlagOverrides, OverrideType

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = 'feature:'


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


# ─── Abstract Repository ───────────────────────────────────────


class FlagRepository(ABC):
	"""Keyed storage for feature flags with optional read-through caching."""

	backend: str = ''

	def __init__(self, cache: Optional[Cache] = None):
		self.cache: Cache = cache or NullCache()

	@staticmethod
	def cache_key(key: str) -> str:
		return f'{CACHE_KEY_PREFIX}{key}'

	async def create(self, flag: FeatureFlag) -> FeatureFlag:
		"""Insert a new flag. Raises ConflictError if the key exists."""
		created = await self._insert(flag)
		await self._invalidate(flag.key)
		return created

	async def find_by_key(self, key: str) -> Optional[FeatureFlag]:
		"""Fetch a flag, or None when absent."""
		cache_key = self.cache_key(key)
		cached = await self.cache.get(cache_key)
		if cached is not None:
			try:
				return FeatureFlag.model_validate_json(cached)
			except ValueError as e:
				logger.warning('Discarding unreadable cache entry %s: %s', cache_key, e)
				await self.cache.delete(cache_key)

		flag = await self._fetch(key)
		if flag is not None:
			await self.cache.set(cache_key, flag.model_dump_json(by_alias=True))
		return flag

	async def find_all(self) -> List[FeatureFlag]:
		"""All flags sorted by key ascending."""
		return await self._fetch_all()

	async def update_global_state(self, key: str, enabled: bool) -> None:
		await self._update_enabled(key, enabled)
		await self._invalidate(key)

	async def set_override(self, key: str, override_type: OverrideType, entity_id: str, enabled: bool) -> None:
		"""Insert or replace one override entry."""
		await self._upsert_override(key, override_type, entity_id, enabled)
		await self._invalidate(key)

	async def remove_override(self, key: str, override_type: OverrideType, entity_id: str) -> None:
		"""Remove one override entry. Removing an absent entry is a no-op."""
		await self._delete_override(key, override_type, entity_id)
		await self._invalidate(key)

	async def delete(self, key: str) -> None:
		await self._remove(key)
		await self._invalidate(key)

	async def close(self) -> None:
		"""Release backend resources."""

	async def _invalidate(self, key: str) -> None:
		await self.cache.delete(self.cache_key(key))

	@abstractmethod
	async def ping(self) -> bool:
		"""Report whether the backend is reachable."""

	@abstractmethod
	async def _insert(self, flag: FeatureFlag) -> FeatureFlag: ...

	@abstractmethod
	async def _fetch(self, key: str) -> Optional[FeatureFlag]: ...

	@abstractmethod
	async def _fetch_all(self) -> List[FeatureFlag]: ...

	@abstractmethod
	async def _update_enabled(self, key: str, enabled: bool) -> None: ...

	@abstractmethod
	async def _upsert_override(self, key: str, override_type: OverrideType, entity_id: str, enabled: bool) -> None: ...

	@abstractmethod
	async def _delete_override(self, key: str, override_type: OverrideType, entity_id: str) -> None: ...

	@abstractmethod
	async def _remove(self, key: str) -> None: ...


# ─── Supabase Repository ───────────────────────────────────────

FLAGS_TABLE = 'feature_flags'
OVERRIDES_TABLE = 'feature_flag_overrides'
SELECT_WITH_OVERRIDES = f'*, {OVERRIDES_TABLE}(type, entity_id, enabled)'

UNIQUE_VIOLATION = '23505'
FOREIGN_KEY_VIOLATION = '23503'


class SupabaseFlagRepository(FlagRepository):
	"""
	Repository backed by Supabase (PostgREST).

	Overrides live in their own table keyed by (flag_key, type, entity_id),
	so each entry is an independent row and concurrent upserts on different
	entities never overwrite each other.
	"""

	backend = 'supabase'

	def __init__(self, client: Any, cache: Optional[Cache] = None):
		"""
		Args:
		    client: Supabase client instance
		    cache: optional cache placed in front of find_by_key
		"""
		super().__init__(cache)
		self._client = client

	def _table(self, name: str = FLAGS_TABLE):
		return self._client.table(name)

	async def _run(self, operation: str, query, key: Optional[str] = None):
		"""Execute a query off the event loop and map PostgREST failures."""
		try:
			return await asyncio.to_thread(query.execute)
		except APIError as e:
			if e.code == UNIQUE_VIOLATION and key is not None:
				raise ConflictError(key) from e
			if e.code == FOREIGN_KEY_VIOLATION and key is not None:
				raise NotFoundError(key) from e
			logger.error('[%s] %s failed: %s', FLAGS_TABLE, operation, e)
			raise StorageError(operation) from e
		except Exception as e:
			logger.error('[%s] %s failed: %s', FLAGS_TABLE, operation, e, exc_info=True)
			raise StorageError(operation) from e

	@staticmethod
	def _to_domain(row: Dict[str, Any]) -> FeatureFlag:
		overrides = FlagOverrides()
		for item in row.get(OVERRIDES_TABLE) or []:
			overrides.for_type(OverrideType(item['type']))[item['entity_id']] = item['enabled']
		return FeatureFlag(
			key=row['key'],
			description=row.get('description') or '',
			enabled=row['enabled'],
			overrides=overrides,
			created_at=row.get('created_at'),
			updated_at=row.get('updated_at'),
		)

	async def _touch(self, operation: str, key: str) -> None:
		"""Bump updated_at, raising NotFoundError when the flag is missing."""
		result = await self._run(operation, self._table().update({'updated_at': _utcnow().isoformat()}).eq('key', key))
		if not result.data:
			raise NotFoundError(key)

	async def ping(self) -> bool:
		try:
			await asyncio.to_thread(self._table().select('key').limit(1).execute)
			return True
		except Exception as e:
			logger.warning('Supabase ping failed: %s', e)
			return False

	async def _insert(self, flag: FeatureFlag) -> FeatureFlag:
		now = _utcnow().isoformat()
		row = {
			'key': flag.key,
			'description': flag.description,
			'enabled': flag.enabled,
			'created_at': now,
			'updated_at': now,
		}
		result = await self._run('create', self._table().insert(row), key=flag.key)
		if not result.data:
			raise StorageError('create')
		return self._to_domain(result.data[0])

	async def _fetch(self, key: str) -> Optional[FeatureFlag]:
		result = await self._run('find_by_key', self._table().select(SELECT_WITH_OVERRIDES).eq('key', key).limit(1))
		return self._to_domain(result.data[0]) if result.data else None

	async def _fetch_all(self) -> List[FeatureFlag]:
		result = await self._run('find_all', self._table().select(SELECT_WITH_OVERRIDES).order('key'))
		return [self._to_domain(row) for row in result.data or []]

	async def _update_enabled(self, key: str, enabled: bool) -> None:
		query = self._table().update({'enabled': enabled, 'updated_at': _utcnow().isoformat()}).eq('key', key)
		result = await self._run('update_global_state', query)
		if not result.data:
			raise NotFoundError(key)

	async def _upsert_override(self, key: str, override_type: OverrideType, entity_id: str, enabled: bool) -> None:
		await self._touch('set_override', key)
		row = {'flag_key': key, 'type': override_type.value, 'entity_id': entity_id, 'enabled': enabled}
		query = self._table(OVERRIDES_TABLE).upsert(row, on_conflict='flag_key,type,entity_id')
		await self._run('set_override', query, key=key)

	async def _delete_override(self, key: str, override_type: OverrideType, entity_id: str) -> None:
		await self._touch('remove_override', key)
		query = (
			self._table(OVERRIDES_TABLE)
			.delete()
			.eq('flag_key', key)
			.eq('type', override_type.value)
			.eq('entity_id', entity_id)
		)
		await self._run('remove_override', query)

	async def _remove(self, key: str) -> None:
		result = await self._run('delete', self._table().delete().eq('key', key))
		if not result.data:
			raise NotFoundError(key)


# ─── In-Memory Repository ──────────────────────────────────────


class InMemoryFlagRepository(FlagRepository):
	"""Dict-backed repository for tests and local runs."""

	backend = 'memory'

	def __init__(self, cache: Optional[Cache] = None):
		super().__init__(cache)
		self._store: Dict[str, FeatureFlag] = {}
		self._lock = asyncio.Lock()

	def _get_or_raise(self, key: str) -> FeatureFlag:
		flag = self._store.get(key)
		if flag is None:
			raise NotFoundError(key)
		return flag

	async def ping(self) -> bool:
		return True

	async def _insert(self, flag: FeatureFlag) -> FeatureFlag:
		async with self._lock:
			if flag.key in self._store:
				raise ConflictError(flag.key)
			now = _utcnow()
			stored = flag.model_copy(deep=True, update={'created_at': now, 'updated_at': now})
			self._store[flag.key] = stored
			return stored.model_copy(deep=True)

	async def _fetch(self, key: str) -> Optional[FeatureFlag]:
		flag = self._store.get(key)
		return flag.model_copy(deep=True) if flag else None

	async def _fetch_all(self) -> List[FeatureFlag]:
		return [self._store[key].model_copy(deep=True) for key in sorted(self._store)]

	async def _update_enabled(self, key: str, enabled: bool) -> None:
		async with self._lock:
			flag = self._get_or_raise(key)
			flag.enabled = enabled
			flag.updated_at = _utcnow()

	async def _upsert_override(self, key: str, override_type: OverrideType, entity_id: str, enabled: bool) -> None:
		async with self._lock:
			flag = self._get_or_raise(key)
			flag.overrides.for_type(override_type)[entity_id] = enabled
			flag.updated_at = _utcnow()

	async def _delete_override(self, key: str, override_type: OverrideType, entity_id: str) -> None:
		async with self._lock:
			flag = self._get_or_raise(key)
			flag.overrides.for_type(override_type).pop(entity_id, None)
			flag.updated_at = _utcnow()

	async def _remove(self, key: str) -> None:
		async with self._lock:
			self._get_or_raise(key)
			del self._store[key]
