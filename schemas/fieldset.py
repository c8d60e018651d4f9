"""Fieldset schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field as PydanticField

from schemas.location import LocationGroup

FIELD_KEY_PATTERN = r'^[a-z0-9_]+$'


class FieldsetCreate(BaseModel):
    """Schema for creating a fieldset"""
    title: str = PydanticField("New Fieldset", min_length=1, max_length=255)
    field_key: Optional[str] = PydanticField(None, max_length=100, pattern=FIELD_KEY_PATTERN)
    description: str = ""
    is_active: bool = True
    settings: dict = PydanticField(default_factory=dict)
    menu_order: int = PydanticField(0, ge=0)


class FieldsetUpdate(BaseModel):
    """Schema for updating a fieldset"""
    title: Optional[str] = PydanticField(None, min_length=1, max_length=255)
    field_key: Optional[str] = PydanticField(None, max_length=100, pattern=FIELD_KEY_PATTERN)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    settings: Optional[dict] = None
    menu_order: Optional[int] = PydanticField(None, ge=0)


class FieldsetRead(BaseModel):
    """Schema for reading a fieldset"""
    id: int
    title: str
    field_key: str
    description: Optional[str]
    is_active: bool
    settings: dict
    menu_order: int
    location_groups: list[LocationGroup] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FieldsetImportResult(BaseModel):
    imported: bool
    id: int


class FieldsetExport(BaseModel):
    version: str
    exported: datetime
    fieldset: dict[str, Any]
