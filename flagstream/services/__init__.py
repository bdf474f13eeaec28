"""
Services Module - orchestration and store connections
"""

from flagstream.services.flag_service import FlagService

__all__ = ['FlagService']
