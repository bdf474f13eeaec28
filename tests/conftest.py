from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from flagstream.core.config import Settings
from flagstream.main import create_app
from flagstream.models.flag import FeatureFlag, FlagOverrides
from flagstream.repositories.flag_repository import InMemoryFlagRepository
from flagstream.services.flag_service import FlagService


class RecordingCache:
	"""Dict-backed cache that records every call."""

	def __init__(self):
		self.store: Dict[str, str] = {}
		self.calls: List[Tuple[str, str]] = []

	async def get(self, key: str) -> Optional[str]:
		self.calls.append(('get', key))
		return self.store.get(key)

	async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
		self.calls.append(('set', key))
		self.store[key] = value

	async def delete(self, key: str) -> None:
		self.calls.append(('delete', key))
		self.store.pop(key, None)

	async def ping(self) -> bool:
		return True

	async def stats(self) -> Dict[str, Any]:
		return {'enabled': True, 'connected': True}

	async def close(self) -> None:
		return None


def make_flag(
	key: str = 'dark-mode',
	enabled: bool = False,
	users: Optional[Dict[str, bool]] = None,
	groups: Optional[Dict[str, bool]] = None,
	regions: Optional[Dict[str, bool]] = None,
) -> FeatureFlag:
	return FeatureFlag(
		key=key,
		description=f'Description for {key}',
		enabled=enabled,
		overrides=FlagOverrides(users=users or {}, groups=groups or {}, regions=regions or {}),
	)


@pytest.fixture
def settings() -> Settings:
	return Settings(_env_file=None, ENVIRONMENT='development', STORE_BACKEND='memory', CACHE_ENABLED=False)


@pytest.fixture
def cache() -> RecordingCache:
	return RecordingCache()


@pytest.fixture
def repository() -> InMemoryFlagRepository:
	return InMemoryFlagRepository()


@pytest.fixture
def service(repository) -> FlagService:
	return FlagService(repository)


@pytest.fixture
def client(settings, repository):
	app = create_app(settings, repository=repository)
	with TestClient(app) as test_client:
		yield test_client
