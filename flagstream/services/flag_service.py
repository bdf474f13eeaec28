"""
Feature Flag Service
Validates inputs, enforces existence checks and sequences repository calls
around the evaluation engine.
"""

from typing import List, Optional, Sequence

import structlog

from flagstream.core.exceptions import NotFoundError
from flagstream.domain import evaluator
from flagstream.domain.validators import (
	validate_description,
	validate_enabled_state,
	validate_evaluation_context,
	validate_feature_key,
	validate_override_id,
	validate_override_type,
)
from flagstream.models.flag import EvaluationContext, EvaluationResult, FeatureFlag, OverrideType
from flagstream.repositories.flag_repository import FlagRepository

logger = structlog.get_logger(__name__)


class FlagService:
	def __init__(self, repository: FlagRepository):
		self.repository = repository

	async def create_feature(self, key: str, description: Optional[str], enabled: bool) -> FeatureFlag:
		"""Create a flag with empty override mappings."""
		validate_feature_key(key)
		description = validate_description(description)
		validate_enabled_state(enabled)

		flag = await self.repository.create(FeatureFlag(key=key, description=description, enabled=enabled))
		logger.info('feature_created', key=key, enabled=enabled)
		return flag

	async def get_feature(self, key: str) -> FeatureFlag:
		validate_feature_key(key)
		flag = await self.repository.find_by_key(key)
		if flag is None:
			raise NotFoundError(key)
		return flag

	async def list_features(self) -> List[FeatureFlag]:
		return await self.repository.find_all()

	async def evaluate_feature(self, key: str, context: EvaluationContext) -> EvaluationResult:
		validate_feature_key(key)
		validate_evaluation_context(context)

		flag = await self.get_feature(key)
		return evaluator.evaluate(flag, context)

	async def evaluate_features(
		self, context: EvaluationContext, keys: Optional[Sequence[str]] = None
	) -> List[EvaluationResult]:
		"""
		Evaluate several flags against one context.

		With keys, results follow the given order and every key must exist.
		Without keys, every flag is evaluated in key order.
		"""
		validate_evaluation_context(context)
		if keys is None:
			flags = await self.repository.find_all()
		else:
			for key in keys:
				validate_feature_key(key)
			flags = [await self.get_feature(key) for key in keys]
		return evaluator.evaluate_many(flags, context)

	async def update_global_state(self, key: str, enabled: bool) -> None:
		validate_feature_key(key)
		validate_enabled_state(enabled)

		await self.repository.update_global_state(key, enabled)
		logger.info('feature_state_updated', key=key, enabled=enabled)

	async def set_override(self, key: str, override_type: str, entity_id: str, enabled: bool) -> OverrideType:
		"""Add or replace one override entry."""
		validate_feature_key(key)
		tier = validate_override_type(override_type)
		validate_override_id(entity_id)
		validate_enabled_state(enabled)

		await self.get_feature(key)
		await self.repository.set_override(key, tier, entity_id, enabled)
		logger.info('override_set', key=key, type=tier.value, entity_id=entity_id, enabled=enabled)
		return tier

	async def remove_override(self, key: str, override_type: str, entity_id: str) -> OverrideType:
		validate_feature_key(key)
		tier = validate_override_type(override_type)
		validate_override_id(entity_id)

		await self.get_feature(key)
		await self.repository.remove_override(key, tier, entity_id)
		logger.info('override_removed', key=key, type=tier.value, entity_id=entity_id)
		return tier

	async def delete_feature(self, key: str) -> None:
		validate_feature_key(key)
		await self.repository.delete(key)
		logger.info('feature_deleted', key=key)
