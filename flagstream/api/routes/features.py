"""
Feature Flag Routes
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Request

from flagstream.api.schemas import (
	BulkEvaluateRequest,
	BulkEvaluationResponse,
	CreateFeatureRequest,
	EvaluateRequest,
	FeatureDeletedResponse,
	FeatureUpdatedResponse,
	OverrideInfo,
	OverrideRequest,
	OverrideResponse,
	UpdateFeatureRequest,
)
from flagstream.models.flag import EvaluationResult, FeatureFlag
from flagstream.services.flag_service import FlagService

router = APIRouter()


def get_flag_service(request: Request) -> FlagService:
	"""Resolve the service built by the app lifespan."""
	return request.app.state.flag_service


Service = Annotated[FlagService, Depends(get_flag_service)]


@router.post('', response_model=FeatureFlag, status_code=201)
async def create_feature(body: CreateFeatureRequest, service: Service):
	"""Create a new feature flag."""
	return await service.create_feature(body.key, body.description, body.enabled)


@router.get('', response_model=List[FeatureFlag])
async def list_features(service: Service):
	"""Get all feature flags, sorted by key."""
	return await service.list_features()


@router.post('/evaluate', response_model=BulkEvaluationResponse)
async def evaluate_features(body: BulkEvaluateRequest, service: Service):
	"""Evaluate several flags (or all of them) for one context."""
	results = await service.evaluate_features(body.to_context(), keys=body.keys)
	return BulkEvaluationResponse(results=results)


@router.get('/{key}', response_model=FeatureFlag)
async def get_feature(key: str, service: Service):
	return await service.get_feature(key)


@router.put('/{key}', response_model=FeatureUpdatedResponse)
async def update_feature(key: str, body: UpdateFeatureRequest, service: Service):
	"""Update the global state of a feature flag."""
	await service.update_global_state(key, body.enabled)
	return FeatureUpdatedResponse(key=key, enabled=body.enabled)


@router.post('/{key}/evaluate', response_model=EvaluationResult)
async def evaluate_feature(key: str, body: EvaluateRequest, service: Service):
	"""Evaluate a feature flag for a given context."""
	return await service.evaluate_feature(key, body.to_context())


@router.post('/{key}/overrides', response_model=OverrideResponse)
async def add_override(key: str, body: OverrideRequest, service: Service):
	"""Add or update an override."""
	tier = await service.set_override(key, body.type, body.id, body.enabled)
	return OverrideResponse(
		message='Override added successfully',
		key=key,
		override=OverrideInfo(type=tier.value, id=body.id, enabled=body.enabled),
	)


@router.delete('/{key}/overrides/{override_type}/{entity_id}', response_model=OverrideResponse, response_model_exclude_none=True)
async def remove_override(key: str, override_type: str, entity_id: str, service: Service):
	tier = await service.remove_override(key, override_type, entity_id)
	return OverrideResponse(
		message='Override removed successfully',
		key=key,
		override=OverrideInfo(type=tier.value, id=entity_id),
	)


@router.delete('/{key}', response_model=FeatureDeletedResponse)
async def delete_feature(key: str, service: Service):
	await service.delete_feature(key)
	return FeatureDeletedResponse(key=key)
