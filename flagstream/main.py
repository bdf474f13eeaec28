"""
FlagStream FastAPI Backend
Feature flag management and hierarchical evaluation API
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from flagstream import __version__
from flagstream.api.routes import features, health
from flagstream.core.cache import Cache, build_cache
from flagstream.core.config import Settings, get_settings
from flagstream.core.exceptions import FlagStreamException
from flagstream.core.logging_config import configure_logging
from flagstream.core.middleware import RequestLoggingMiddleware, RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from flagstream.repositories.flag_repository import FlagRepository, InMemoryFlagRepository, SupabaseFlagRepository
from flagstream.services.flag_service import FlagService
from flagstream.services.supabase_client import create_supabase_client

logger = logging.getLogger(__name__)


def build_repository(settings: Settings, cache: Cache) -> FlagRepository:
	"""Select the store backend from configuration."""
	if settings.store_backend == 'memory':
		logger.warning('Using in-memory flag store; data is lost on restart')
		return InMemoryFlagRepository(cache=cache)
	return SupabaseFlagRepository(create_supabase_client(settings), cache=cache)


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(FlagStreamException)
	async def flagstream_exception_handler(request: Request, exc: FlagStreamException):
		if exc.status_code >= 500:
			logger.error(f'FlagStream error [{exc.code}]: {exc.message}', exc_info=exc)
		else:
			logger.warning(f'FlagStream error [{exc.code}]: {exc.message}')
		return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

	# Malformed bodies are validation failures like any other
	@app.exception_handler(RequestValidationError)
	async def request_validation_handler(request: Request, exc: RequestValidationError):
		errors = jsonable_encoder(exc.errors(), exclude={'input', 'ctx', 'url'})
		logger.warning(f'Request validation failed: {errors}')
		return JSONResponse(
			status_code=400,
			content={
				'error': True,
				'code': 'VALIDATION_ERROR',
				'message': 'Invalid request body',
				'details': {'errors': errors},
			},
		)

	@app.exception_handler(StarletteHTTPException)
	async def http_exception_handler(request: Request, exc: StarletteHTTPException):
		return JSONResponse(
			status_code=exc.status_code,
			content={'error': True, 'code': f'HTTP_{exc.status_code}', 'message': str(exc.detail)},
			headers=getattr(exc, 'headers', None),
		)

	@app.exception_handler(Exception)
	async def global_exception_handler(request: Request, exc: Exception):
		logger.error(f'Global error: {exc}', exc_info=exc)
		# Exception text stays in the logs
		content = {'error': True, 'code': 'INTERNAL_ERROR', 'message': 'Internal Server Error'}
		return JSONResponse(status_code=500, content=content)


def create_app(
	settings: Optional[Settings] = None,
	repository: Optional[FlagRepository] = None,
	cache: Optional[Cache] = None,
) -> FastAPI:
	"""
	Build the application.

	The lifespan owns store and cache connections. Pre-built collaborators
	may be injected (tests, embedding); otherwise they come from settings.
	"""
	settings = settings or get_settings()
	configure_logging(settings)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		"""Handle startup and shutdown events."""
		logger.info(f'🚀 FlagStream API starting... (Environment: {settings.environment})')

		if cache is not None:
			app_cache = cache
		elif repository is not None:
			app_cache = repository.cache
		else:
			app_cache = build_cache(settings)
		app_repository = repository if repository is not None else build_repository(settings, app_cache)

		app.state.settings = settings
		app.state.cache = app_cache
		app.state.repository = app_repository
		app.state.flag_service = FlagService(app_repository)
		logger.info(f'📦 Store backend: {app_repository.backend}, cache: {type(app_cache).__name__}')

		yield

		logger.info('🛑 FlagStream API shutting down...')
		await app_repository.close()
		await app_cache.close()
		logger.info('✅ Graceful shutdown complete')

	app = FastAPI(
		title='FlagStream API',
		description='Feature flag management with user, group and region overrides',
		version=__version__,
		lifespan=lifespan,
		docs_url='/docs' if not settings.is_production else None,
		redoc_url='/redoc' if not settings.is_production else None,
		openapi_url='/openapi.json' if not settings.is_production else None,
	)

	register_exception_handlers(app)

	# ============================================
	# Middleware Stack (order matters - last added = first executed)
	# ============================================
	app.add_middleware(SecurityHeadersMiddleware)
	app.add_middleware(RequestLoggingMiddleware)
	app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.max_request_size)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=settings.get_cors_origins(),
		allow_methods=['*'],
		allow_headers=['*'],
	)

	app.include_router(health.router, tags=['Health'])
	app.include_router(features.router, prefix='/api/features', tags=['Features'])

	return app


def main() -> None:
	settings = get_settings()
	logger.info(f'Starting Uvicorn (environment: {settings.environment})...')
	uvicorn.run(
		'flagstream.main:create_app',
		factory=True,
		host=settings.host,
		port=settings.port,
		reload=settings.is_development,
		log_level=settings.log_level.lower(),
	)


if __name__ == '__main__':
	main()
