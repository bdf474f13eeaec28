"""
Hierarchical flag evaluation: user > group > region > global default.

Pure functions over already-validated inputs. The first tier whose context
identifier is present and found in that tier's mapping decides the result;
lower tiers are never consulted after a match.
"""

from typing import Iterable, List, Tuple

from flagstream.models.flag import EvaluationContext, EvaluationReason, EvaluationResult, FeatureFlag, OverrideType

# Highest precedence first. Adding a tier means widening FlagOverrides and this table.
TIERS: Tuple[Tuple[OverrideType, EvaluationReason], ...] = (
	(OverrideType.USER, EvaluationReason.USER_OVERRIDE),
	(OverrideType.GROUP, EvaluationReason.GROUP_OVERRIDE),
	(OverrideType.REGION, EvaluationReason.REGION_OVERRIDE),
)


def evaluate(flag: FeatureFlag, context: EvaluationContext) -> EvaluationResult:
	"""Resolve the effective state of one flag for one context."""
	for override_type, reason in TIERS:
		identifier = context.identifier_for(override_type)
		if not identifier:
			continue
		mapping = flag.overrides.for_type(override_type)
		if identifier in mapping:
			return EvaluationResult(key=flag.key, enabled=mapping[identifier], reason=reason)

	return EvaluationResult(key=flag.key, enabled=flag.enabled, reason=EvaluationReason.GLOBAL_DEFAULT)


def evaluate_many(flags: Iterable[FeatureFlag], context: EvaluationContext) -> List[EvaluationResult]:
	"""Evaluate each flag independently, preserving input order."""
	return [evaluate(flag, context) for flag in flags]
