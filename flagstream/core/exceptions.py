"""
Custom Exceptions for FlagStream
Provides structured error handling across the application
"""

from typing import Any, Dict, Optional


class FlagStreamException(Exception):
	"""Base exception for all FlagStream errors."""

	def __init__(
		self, message: str, code: str = 'INTERNAL_ERROR', details: Optional[Dict[str, Any]] = None, status_code: int = 500
	):
		super().__init__(message)
		self.message = message
		self.code = code
		self.details = details or {}
		self.status_code = status_code

	def to_dict(self) -> Dict[str, Any]:
		"""Convert exception to API response format."""
		return {'error': True, 'code': self.code, 'message': self.message, 'details': self.details}


class ValidationError(FlagStreamException):
	"""Invalid input data."""

	def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
		super().__init__(message=message, code='VALIDATION_ERROR', details={'field': field, **(details or {})}, status_code=400)


class NotFoundError(FlagStreamException):
	"""Referenced feature flag does not exist."""

	def __init__(self, key: str):
		super().__init__(
			message=f"Feature flag '{key}' not found",
			code='NOT_FOUND',
			details={'resource': 'feature_flag', 'key': key},
			status_code=404,
		)
		self.key = key


class ConflictError(FlagStreamException):
	"""Feature flag key already taken."""

	def __init__(self, key: str):
		super().__init__(
			message=f"Feature flag '{key}' already exists",
			code='CONFLICT',
			details={'resource': 'feature_flag', 'key': key},
			status_code=409,
		)
		self.key = key


class StorageError(FlagStreamException):
	"""Store operation failed. The message is generic; the cause is kept for logs."""

	def __init__(self, operation: str, message: str = 'A storage error occurred'):
		super().__init__(message=message, code='STORAGE_ERROR', details={'operation': operation}, status_code=500)
		self.operation = operation
