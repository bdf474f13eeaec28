import logging
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	"""
	Application Settings managed by Pydantic.
	Reads from environment variables and .env file.
	"""

	# ============================================
	# Environment & Application Settings
	# ============================================
	environment: Literal['development', 'staging', 'production'] = Field('development', alias='ENVIRONMENT')
	log_level: str = Field('INFO', alias='LOG_LEVEL')

	# ============================================
	# Server Configuration
	# ============================================
	host: str = Field('0.0.0.0', alias='HOST')
	port: int = Field(7000, alias='PORT')
	cors_origins: str = Field('*', alias='CORS_ORIGINS')
	max_request_size: int = Field(1024 * 1024, alias='MAX_REQUEST_SIZE')  # 1MB

	# ============================================
	# Flag Store
	# ============================================
	store_backend: Literal['supabase', 'memory'] = Field('supabase', alias='STORE_BACKEND')
	supabase_url: Optional[str] = Field(None, alias='SUPABASE_URL')
	supabase_key: Optional[SecretStr] = Field(None, alias='SUPABASE_KEY')

	# ============================================
	# Redis Cache
	# ============================================
	redis_url: Optional[str] = Field('redis://localhost:6379/0', alias='REDIS_URL')
	cache_enabled: bool = Field(True, alias='CACHE_ENABLED')
	cache_ttl_seconds: int = Field(300, alias='CACHE_TTL_SECONDS')

	model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore', populate_by_name=True)

	# ============================================
	# Helper Properties
	# ============================================

	@property
	def is_production(self) -> bool:
		"""Check if running in production environment."""
		return self.environment == 'production'

	@property
	def is_development(self) -> bool:
		"""Check if running in development environment."""
		return self.environment == 'development'

	@property
	def use_cache(self) -> bool:
		return self.cache_enabled and bool(self.redis_url)

	def get_supabase_key(self) -> str:
		if self.supabase_key:
			return self.supabase_key.get_secret_value()
		raise ValueError('Supabase key not found. Set SUPABASE_KEY in .env')

	def get_cors_origins(self) -> List[str]:
		"""Parse CORS origins from comma-separated string."""
		if not self.cors_origins:
			return []
		return [origin.strip() for origin in self.cors_origins.split(',') if origin.strip()]

	def get_log_level(self) -> int:
		"""Convert log level string to logging constant."""
		return logging.getLevelName(self.log_level)

	@field_validator('log_level')
	@classmethod
	def validate_log_level(cls, v: str) -> str:
		"""Validate log level is a valid option."""
		valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
		if v.upper() not in valid_levels:
			raise ValueError(f'Invalid log level: {v}. Must be one of {valid_levels}')
		return v.upper()

	@field_validator('cache_ttl_seconds')
	@classmethod
	def validate_cache_ttl(cls, v: int) -> int:
		"""Validate cache TTL is positive."""
		if v <= 0:
			raise ValueError('cache_ttl_seconds must be positive')
		return v

	@field_validator('port')
	@classmethod
	def validate_port(cls, v: int) -> int:
		if not 0 < v < 65536:
			raise ValueError('port must be between 1 and 65535')
		return v


@lru_cache
def get_settings() -> Settings:
	"""Load settings once per process."""
	return Settings()
