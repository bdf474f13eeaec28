"""
Feature flag domain models.

A flag is a named boolean with a global default and three independent
override mappings (user, group, region). Models serialize to camelCase JSON,
which is both the API shape and the cache payload.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class OverrideType(str, Enum):
	USER = 'user'
	GROUP = 'group'
	REGION = 'region'

	@property
	def mapping(self) -> str:
		"""Name of the FlagOverrides attribute holding this tier."""
		return f'{self.value}s'


class EvaluationReason(str, Enum):
	USER_OVERRIDE = 'user-override'
	GROUP_OVERRIDE = 'group-override'
	REGION_OVERRIDE = 'region-override'
	GLOBAL_DEFAULT = 'global-default'


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FlagOverrides(CamelModel):
	users: Dict[str, bool] = Field(default_factory=dict)
	groups: Dict[str, bool] = Field(default_factory=dict)
	regions: Dict[str, bool] = Field(default_factory=dict)

	@field_validator('users', 'groups', 'regions', mode='before')
	@classmethod
	def _none_as_empty(cls, v):
		# Older records may lack the regions mapping entirely
		return {} if v is None else v

	def for_type(self, override_type: OverrideType) -> Dict[str, bool]:
		return getattr(self, override_type.mapping)


class FeatureFlag(CamelModel):
	"""Persisted shape of a feature flag."""

	key: str
	description: str = ''
	enabled: bool = False
	overrides: FlagOverrides = Field(default_factory=FlagOverrides)
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None

	def to_response(self) -> Dict:
		return self.model_dump(mode='json', by_alias=True)


class EvaluationContext(CamelModel):
	"""Request-scoped identifiers a flag is evaluated against."""

	user_id: Optional[str] = None
	group_id: Optional[str] = None
	region_id: Optional[str] = None

	def identifier_for(self, override_type: OverrideType) -> Optional[str]:
		return getattr(self, f'{override_type.value}_id')


class EvaluationResult(CamelModel):
	key: str
	enabled: bool
	reason: EvaluationReason

	def to_response(self) -> Dict:
		return self.model_dump(mode='json', by_alias=True)
