"""Fieldsets API endpoints - CRUD, duplication, export/import and location rules"""

from typing import Any

from fastapi import APIRouter, Body, Depends, status

from repositories.fieldset_repository import FieldsetRepository, get_fieldset_repository
from repositories.location_repository import LocationRepository, get_location_repository
from schemas.fieldset import FieldsetCreate, FieldsetUpdate, FieldsetRead, FieldsetImportResult, FieldsetExport
from schemas.location import LocationGroup
from services.fieldset_export_service import FieldsetExportService, get_fieldset_export_service

router = APIRouter()


@router.get("/", response_model=list[FieldsetRead])
def list_fieldsets(
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
):
    """List all fieldsets ordered by menu_order"""
    return fieldset_repo.get_all()


@router.post("/", response_model=FieldsetRead, status_code=status.HTTP_201_CREATED)
def create_fieldset(
    fieldset_data: FieldsetCreate,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
):
    """
    Create a fieldset.

    A unique `fieldset_<hex>` key is generated when none is given.
    `settings.location_groups` is stored as location rules.
    """
    return fieldset_repo.create(fieldset_data)


@router.post("/import/", response_model=FieldsetImportResult, status_code=status.HTTP_201_CREATED)
def import_fieldset(
    import_data: dict[str, Any] = Body(...),
    export_service: FieldsetExportService = Depends(get_fieldset_export_service),
):
    """Import an exported fieldset under a fresh key"""
    fieldset = export_service.import_fieldset(import_data)
    return FieldsetImportResult(imported=True, id=fieldset.id)


@router.get("/{fieldset_id}/", response_model=FieldsetRead)
def get_fieldset(
    fieldset_id: int,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
):
    return fieldset_repo.get_or_404(fieldset_id)


@router.put("/{fieldset_id}/", response_model=FieldsetRead)
def update_fieldset(
    fieldset_id: int,
    update_data: FieldsetUpdate,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
):
    """Update a fieldset; location rules are replaced when settings.location_groups is sent"""
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return fieldset_repo.update(fieldset, update_data.model_dump(exclude_unset=True))


@router.delete("/{fieldset_id}/", status_code=status.HTTP_204_NO_CONTENT)
def delete_fieldset(
    fieldset_id: int,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
):
    """Delete a fieldset with its fields and location rules"""
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    fieldset_repo.delete(fieldset)


@router.post("/{fieldset_id}/duplicate/", response_model=FieldsetRead, status_code=status.HTTP_201_CREATED)
def duplicate_fieldset(
    fieldset_id: int,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    export_service: FieldsetExportService = Depends(get_fieldset_export_service),
):
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return export_service.duplicate_fieldset(fieldset)


@router.get("/{fieldset_id}/export/", response_model=FieldsetExport)
def export_fieldset(
    fieldset_id: int,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    export_service: FieldsetExportService = Depends(get_fieldset_export_service),
):
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return export_service.export_fieldset(fieldset)


@router.get("/{fieldset_id}/locations/", response_model=list[LocationGroup])
def get_fieldset_locations(
    fieldset_id: int,
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    location_repo: LocationRepository = Depends(get_location_repository),
):
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return location_repo.get_groups(fieldset)


@router.put("/{fieldset_id}/locations/", response_model=list[LocationGroup])
def update_fieldset_locations(
    fieldset_id: int,
    groups: list[LocationGroup],
    fieldset_repo: FieldsetRepository = Depends(get_fieldset_repository),
    location_repo: LocationRepository = Depends(get_location_repository),
):
    """Replace the location groups of a fieldset"""
    fieldset = fieldset_repo.get_or_404(fieldset_id)
    return location_repo.replace_groups(fieldset, groups)
