"""Tests for the in-memory repository contract and cache-aside behaviour."""

import pytest

from flagstream.core.exceptions import ConflictError, NotFoundError
from flagstream.models.flag import OverrideType
from flagstream.repositories.flag_repository import InMemoryFlagRepository

from tests.conftest import RecordingCache, make_flag


async def test_create_and_find(repository) -> None:
	created = await repository.create(make_flag('dark-mode'))
	assert created.created_at is not None
	assert created.updated_at == created.created_at

	found = await repository.find_by_key('dark-mode')
	assert found.key == 'dark-mode'
	assert found.overrides.users == {}


async def test_duplicate_create_conflicts(repository) -> None:
	await repository.create(make_flag('dark-mode'))
	with pytest.raises(ConflictError) as exc_info:
		await repository.create(make_flag('dark-mode', enabled=True))
	assert exc_info.value.status_code == 409


async def test_find_missing_returns_none(repository) -> None:
	assert await repository.find_by_key('nope') is None


async def test_find_all_sorted_by_key(repository) -> None:
	for key in ('zeta', 'alpha', 'Mid'):
		await repository.create(make_flag(key))
	assert [f.key for f in await repository.find_all()] == ['Mid', 'alpha', 'zeta']


async def test_update_global_state(repository) -> None:
	created = await repository.create(make_flag('dark-mode', enabled=False))
	await repository.update_global_state('dark-mode', True)
	flag = await repository.find_by_key('dark-mode')
	assert flag.enabled is True
	assert flag.updated_at >= created.updated_at


async def test_mutations_on_missing_flag_raise_not_found(repository) -> None:
	with pytest.raises(NotFoundError):
		await repository.update_global_state('ghost', True)
	with pytest.raises(NotFoundError):
		await repository.set_override('ghost', OverrideType.USER, 'u1', True)
	with pytest.raises(NotFoundError):
		await repository.remove_override('ghost', OverrideType.USER, 'u1')
	with pytest.raises(NotFoundError):
		await repository.delete('ghost')


async def test_override_upsert_is_idempotent_and_isolated(repository) -> None:
	await repository.create(make_flag('dark-mode'))
	await repository.set_override('dark-mode', OverrideType.USER, 'u1', True)
	await repository.set_override('dark-mode', OverrideType.USER, 'u2', False)
	await repository.set_override('dark-mode', OverrideType.USER, 'u1', True)
	assert (await repository.find_by_key('dark-mode')).overrides.users == {'u1': True, 'u2': False}

	await repository.set_override('dark-mode', OverrideType.USER, 'u1', False)
	flag = await repository.find_by_key('dark-mode')
	assert flag.overrides.users == {'u1': False, 'u2': False}
	assert flag.overrides.groups == {}


async def test_remove_override_absent_entry_is_noop(repository) -> None:
	await repository.create(make_flag('dark-mode'))
	await repository.set_override('dark-mode', OverrideType.REGION, 'eu', True)
	await repository.remove_override('dark-mode', OverrideType.REGION, 'us')
	await repository.remove_override('dark-mode', OverrideType.REGION, 'eu')
	assert (await repository.find_by_key('dark-mode')).overrides.regions == {}


async def test_delete(repository) -> None:
	await repository.create(make_flag('dark-mode'))
	await repository.delete('dark-mode')
	assert await repository.find_by_key('dark-mode') is None


async def test_returned_records_are_copies(repository) -> None:
	await repository.create(make_flag('dark-mode'))
	flag = await repository.find_by_key('dark-mode')
	flag.overrides.users['intruder'] = True
	assert (await repository.find_by_key('dark-mode')).overrides.users == {}


# ─── Cache-aside ────────────────────────────────────────────────


async def test_miss_populates_cache_and_hit_skips_store() -> None:
	cache = RecordingCache()
	repo = InMemoryFlagRepository(cache=cache)
	await repo.create(make_flag('dark-mode', enabled=True))

	await repo.find_by_key('dark-mode')
	assert 'feature:dark-mode' in cache.store

	# Drop the record behind the cache's back; a hit must not consult the store
	repo._store.clear()
	cached = await repo.find_by_key('dark-mode')
	assert cached is not None
	assert cached.enabled is True


async def test_absent_records_are_not_cached() -> None:
	cache = RecordingCache()
	repo = InMemoryFlagRepository(cache=cache)
	assert await repo.find_by_key('ghost') is None
	assert cache.store == {}


@pytest.mark.parametrize(
	'mutate',
	[
		lambda repo: repo.update_global_state('dark-mode', True),
		lambda repo: repo.set_override('dark-mode', OverrideType.USER, 'u1', True),
		lambda repo: repo.remove_override('dark-mode', OverrideType.USER, 'u1'),
		lambda repo: repo.delete('dark-mode'),
	],
)
async def test_mutations_invalidate_cached_entry(mutate) -> None:
	cache = RecordingCache()
	repo = InMemoryFlagRepository(cache=cache)
	await repo.create(make_flag('dark-mode'))
	await repo.find_by_key('dark-mode')
	assert 'feature:dark-mode' in cache.store

	await mutate(repo)
	assert 'feature:dark-mode' not in cache.store
	assert cache.calls[-1] == ('delete', 'feature:dark-mode')


async def test_override_visible_after_invalidation() -> None:
	repo = InMemoryFlagRepository(cache=RecordingCache())
	await repo.create(make_flag('dark-mode'))
	await repo.find_by_key('dark-mode')
	await repo.set_override('dark-mode', OverrideType.GROUP, 'beta', True)
	assert (await repo.find_by_key('dark-mode')).overrides.groups == {'beta': True}


async def test_failed_mutation_leaves_cache_alone() -> None:
	cache = RecordingCache()
	repo = InMemoryFlagRepository(cache=cache)
	with pytest.raises(NotFoundError):
		await repo.update_global_state('ghost', True)
	assert ('delete', 'feature:ghost') not in cache.calls


async def test_unreadable_cache_entry_falls_back_to_store() -> None:
	cache = RecordingCache()
	repo = InMemoryFlagRepository(cache=cache)
	await repo.create(make_flag('dark-mode', enabled=True))
	cache.store['feature:dark-mode'] = 'not json'

	flag = await repo.find_by_key('dark-mode')
	assert flag.enabled is True
	assert cache.store['feature:dark-mode'] != 'not json'
