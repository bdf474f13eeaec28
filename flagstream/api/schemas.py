"""
Request and response schemas for the feature flag API.

Request bodies use strict types so that `"true"` or `1` are rejected
instead of coerced; format rules (key pattern, lengths) are enforced by
the service validators.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr

from flagstream.models.flag import CamelModel, EvaluationContext, EvaluationResult

# ============================================================================
# Requests
# ============================================================================


class CreateFeatureRequest(BaseModel):
	key: StrictStr
	description: Optional[StrictStr] = None
	enabled: StrictBool

	model_config = ConfigDict(extra='ignore')


class UpdateFeatureRequest(BaseModel):
	enabled: StrictBool


class OverrideRequest(BaseModel):
	type: StrictStr
	id: StrictStr
	enabled: StrictBool


class EvaluateRequest(EvaluationContext):
	user_id: Optional[StrictStr] = None
	group_id: Optional[StrictStr] = None
	region_id: Optional[StrictStr] = None

	def to_context(self) -> EvaluationContext:
		return EvaluationContext(user_id=self.user_id, group_id=self.group_id, region_id=self.region_id)


class BulkEvaluateRequest(EvaluateRequest):
	keys: Optional[List[StrictStr]] = None


# ============================================================================
# Responses
# ============================================================================


class FeatureUpdatedResponse(BaseModel):
	message: str = 'Feature updated successfully'
	key: str
	enabled: bool


class OverrideInfo(BaseModel):
	type: str
	id: str
	enabled: Optional[bool] = None


class OverrideResponse(BaseModel):
	message: str
	key: str
	override: OverrideInfo


class FeatureDeletedResponse(BaseModel):
	message: str = 'Feature deleted successfully'
	key: str


class BulkEvaluationResponse(CamelModel):
	results: List[EvaluationResult]


class HealthResponse(BaseModel):
	status: str
	version: str
	timestamp: str
	store: Dict[str, str]
	cache: Dict[str, bool]
