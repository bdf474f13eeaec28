"""
Input validation for feature flag operations.

Every check raises ValidationError before the store is touched.
"""

import re
from typing import Any

from flagstream.core.exceptions import ValidationError
from flagstream.models.flag import EvaluationContext, OverrideType

KEY_PATTERN = re.compile(r'[A-Za-z0-9_-]+')
MAX_KEY_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_ID_LENGTH = 100


def validate_feature_key(key: Any) -> str:
	if not isinstance(key, str) or not key:
		raise ValidationError('Feature key is required and must be a string', field='key')
	if not key.strip():
		raise ValidationError('Feature key cannot be empty', field='key')
	if not KEY_PATTERN.fullmatch(key):
		raise ValidationError(
			'Feature key must contain only alphanumeric characters, hyphens, and underscores', field='key'
		)
	if len(key) > MAX_KEY_LENGTH:
		raise ValidationError(f'Feature key must not exceed {MAX_KEY_LENGTH} characters', field='key')
	return key


def validate_description(description: Any) -> str:
	if description is None:
		return ''
	if not isinstance(description, str):
		raise ValidationError('Description must be a string', field='description')
	if len(description) > MAX_DESCRIPTION_LENGTH:
		raise ValidationError(f'Description must not exceed {MAX_DESCRIPTION_LENGTH} characters', field='description')
	return description


def validate_enabled_state(enabled: Any) -> bool:
	if not isinstance(enabled, bool):
		raise ValidationError('Enabled state must be a boolean value', field='enabled')
	return enabled


def validate_override_type(override_type: Any) -> OverrideType:
	if isinstance(override_type, OverrideType):
		return override_type
	try:
		return OverrideType(override_type)
	except ValueError:
		valid = ', '.join(t.value for t in OverrideType)
		raise ValidationError(f"Invalid override type '{override_type}'. Must be one of: {valid}", field='type') from None


def validate_override_id(entity_id: Any, field: str = 'id') -> str:
	if not isinstance(entity_id, str) or not entity_id:
		raise ValidationError('Override ID is required and must be a string', field=field)
	if not entity_id.strip():
		raise ValidationError('Override ID cannot be empty', field=field)
	if len(entity_id) > MAX_ID_LENGTH:
		raise ValidationError(f'Override ID must not exceed {MAX_ID_LENGTH} characters', field=field)
	return entity_id


def validate_evaluation_context(context: Any) -> EvaluationContext:
	if not isinstance(context, EvaluationContext):
		raise ValidationError('Evaluation context must be an object', field='context')

	if not (context.user_id or context.group_id or context.region_id):
		raise ValidationError(
			'Evaluation context must include at least one of: userId, groupId, regionId', field='context'
		)

	for field_name, value in (('userId', context.user_id), ('groupId', context.group_id), ('regionId', context.region_id)):
		if value is not None:
			validate_override_id(value, field=field_name)
	return context
