"""Field Types API endpoints - read-only catalog from the field type registry"""

from fastapi import APIRouter, Depends, HTTPException, status

from schemas.field_type import FieldTypeDefinition, FieldTypeSummary
from services.field_type_registry_service import FieldTypeRegistry, get_field_type_registry

router = APIRouter()


@router.get("/", response_model=dict[str, FieldTypeSummary])
def list_field_types(registry: FieldTypeRegistry = Depends(get_field_type_registry)):
    """Palette payload: {type_key: {label, category}} in registration order"""
    return registry.get_catalog()


@router.get("/{key}/", response_model=FieldTypeDefinition)
def get_field_type(key: str, registry: FieldTypeRegistry = Depends(get_field_type_registry)):
    """Full descriptor including the settings schema"""
    field_type = registry.get(key)
    if not field_type:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Field type '{key}' not found"
        )
    return field_type
