"""
Supabase Client - connection factory for the flag store
"""

import logging

from supabase import Client, create_client

from flagstream.core.config import Settings

logger = logging.getLogger(__name__)


def create_supabase_client(settings: Settings) -> Client:
	"""Build a Supabase client. Owned and passed around by the app lifespan."""
	if not settings.supabase_url or not settings.supabase_key:
		raise RuntimeError('Supabase not configured. Set SUPABASE_URL and SUPABASE_KEY in .env')
	client = create_client(settings.supabase_url, settings.get_supabase_key())
	logger.info('Supabase client initialized')
	return client
