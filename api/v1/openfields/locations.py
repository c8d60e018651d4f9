"""Locations API endpoints - location type catalog and context matching"""

from fastapi import APIRouter, Depends

from repositories.fieldset_repository import FieldsetRepository, get_fieldset_repository
from schemas.fieldset import FieldsetRead
from schemas.location import LocationContext, LocationTypeRead
from services.location_rule_service import LocationRuleEvaluator, get_location_evaluator, list_fieldsets_for_context

router = APIRouter()


@router.get("/types/", response_model=list[LocationTypeRead])
def list_location_types(evaluator: LocationRuleEvaluator = Depends(get_location_evaluator)):
    """Registered location types with the options a rule can pick from"""
    return evaluator.get_location_types_for_api()


@router.post("/match/", response_model=list[FieldsetRead])
def match_context(
    context: LocationContext,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    evaluator: LocationRuleEvaluator = Depends(get_location_evaluator),
):
    """Active fieldsets whose location rules match the given screen context"""
    return list_fieldsets_for_context(context, fieldset_repo, evaluator)
