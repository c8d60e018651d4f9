"""Fields API endpoints - wire-shape CRUD, bulk reorder and visibility"""

from fastapi import APIRouter, Depends, status

from repositories.field_repository import FieldRepository, get_field_repository
from repositories.fieldset_repository import FieldsetRepository, get_fieldset_repository
from schemas.field import FieldCreate, FieldUpdate, FieldRead, BulkReorderRequest, FieldVisibilityRequest
from services.conditional_logic_service import evaluate_visibility

router = APIRouter()


@router.get("/fieldsets/{fieldset_id}/fields/", response_model=list[FieldRead])
def list_fields(
    fieldset_id: int,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    field_repo: FieldRepository = Depends(get_field_repository),
):
    """List the fields of a fieldset ordered by menu_order"""
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return field_repo.get_all_by_fieldset(fieldset)


@router.post("/fieldsets/{fieldset_id}/fields/", response_model=FieldRead, status_code=status.HTTP_201_CREATED)
def create_field(
    fieldset_id: int,
    field_data: FieldCreate,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    field_repo: FieldRepository = Depends(get_field_repository),
):
    """
    Create a field in a fieldset.

    Type-specific keys in `field_config` that do not apply to the type are dropped.
    """
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return field_repo.create(field_data, fieldset)


@router.put("/fieldsets/{fieldset_id}/fields/bulk/", response_model=list[FieldRead])
def bulk_reorder_fields(
    fieldset_id: int,
    reorder: BulkReorderRequest,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    field_repo: FieldRepository = Depends(get_field_repository),
):
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return field_repo.bulk_reorder(fieldset, reorder.fields)


@router.post("/fieldsets/{fieldset_id}/fields/visibility/", response_model=dict[str, bool])
def evaluate_field_visibility(
    fieldset_id: int,
    request: FieldVisibilityRequest,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    field_repo: FieldRepository = Depends(get_field_repository),
):
    """Which fields are visible for the given values, keyed by field name"""
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return evaluate_visibility(field_repo.get_all_by_fieldset(fieldset), request.values)


@router.get("/fields/{field_id}/", response_model=FieldRead)
def get_field(
    field_id: int,
    field_repo: FieldRepository = Depends(get_field_repository),
):
    return field_repo.get_or_404(field_id)


@router.put("/fields/{field_id}/", response_model=FieldRead)
def update_field(
    field_id: int,
    update_data: FieldUpdate,
    field_repo: FieldRepository = Depends(get_field_repository),
):
    """Partial update; only the keys that were sent are applied"""
    field = field_repo.get_or_404(field_id)
    return field_repo.update(field, update_data.model_dump(exclude_unset=True))


@router.delete("/fields/{field_id}/", status_code=status.HTTP_204_NO_CONTENT)
def delete_field(
    field_id: int,
    field_repo: FieldRepository = Depends(get_field_repository),
):
    """Delete a field and every sub field nested under it"""
    field = field_repo.get_or_404(field_id)
    field_repo.delete(field)
