"""
Service banner and health reporting.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from flagstream import __version__
from flagstream.api.schemas import HealthResponse

router = APIRouter()


@router.get('/')
async def root():
	return {
		'message': 'Feature Flag System API',
		'version': __version__,
		'endpoints': {'features': '/api/features', 'health': '/health'},
	}


@router.get('/health', response_model=HealthResponse)
async def health_check(request: Request):
	"""Liveness plus store and cache status. Always answers 200."""
	repository = request.app.state.repository
	cache = request.app.state.cache

	store_ok = await repository.ping()
	cache_stats = await cache.stats()

	return HealthResponse(
		status='healthy' if store_ok else 'degraded',
		version=__version__,
		timestamp=datetime.now(timezone.utc).isoformat(),
		store={'backend': repository.backend, 'status': 'connected' if store_ok else 'disconnected'},
		cache={'enabled': bool(cache_stats.get('enabled')), 'connected': bool(cache_stats.get('connected'))},
	)
