"""Field schemas - wire records and the editor's in-memory field"""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field as PydanticField, field_validator

NAME_PATTERN = r'^[a-z0-9_]+$'


def normalize_parent_id(value: Any) -> Any:
    """None, 0 and "0" all mean root level"""
    if value is None or value == 0 or value == "0" or value == "":
        return None
    return value


class FieldCreate(BaseModel):
    """Wire record for creating a field"""
    label: str = PydanticField(..., min_length=1, max_length=255)
    name: str = PydanticField(..., max_length=100, pattern=NAME_PATTERN)
    type: str = PydanticField(..., max_length=50)
    parent_id: Optional[int] = None

    placeholder: Optional[str] = None
    default_value: Any = None
    instructions: Optional[str] = None
    required: bool = False

    conditional_logic: Optional[list] = None
    wrapper_config: Optional[dict] = None
    field_config: dict = PydanticField(default_factory=dict)

    menu_order: int = PydanticField(0, ge=0)

    @field_validator("parent_id", mode="before")
    @classmethod
    def normalize_parent(cls, value: Any) -> Any:
        return normalize_parent_id(value)


class FieldUpdate(BaseModel):
    """Partial wire record; only keys that were sent are applied"""
    label: Optional[str] = PydanticField(None, min_length=1, max_length=255)
    name: Optional[str] = PydanticField(None, max_length=100, pattern=NAME_PATTERN)
    type: Optional[str] = PydanticField(None, max_length=50)
    parent_id: Optional[int] = None

    placeholder: Optional[str] = None
    default_value: Any = None
    instructions: Optional[str] = None
    required: Optional[bool] = None

    conditional_logic: Optional[list] = None
    wrapper_config: Optional[dict] = None
    field_config: Optional[dict] = None

    menu_order: Optional[int] = PydanticField(None, ge=0)

    @field_validator("parent_id", mode="before")
    @classmethod
    def normalize_parent(cls, value: Any) -> Any:
        return normalize_parent_id(value)


class FieldRead(BaseModel):
    """Wire record as stored"""
    id: int
    fieldset_id: int
    parent_id: Optional[int]
    label: str
    name: str
    type: str
    placeholder: Optional[str]
    default_value: Any
    instructions: Optional[str]
    required: bool
    conditional_logic: Optional[list]
    wrapper_config: Optional[dict]
    field_config: dict
    menu_order: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FieldOrderItem(BaseModel):
    id: int
    menu_order: int = PydanticField(..., ge=0)


class BulkReorderRequest(BaseModel):
    fields: list[FieldOrderItem]


class FieldVisibilityRequest(BaseModel):
    values: dict[str, Any] = PydanticField(default_factory=dict)


class EditorField(BaseModel):
    """
    Field as the editor holds it: every setting nested under `settings`.

    `id` is an int once persisted, a `temp-...` string before that and None
    for a bare wire record (create payloads carry no id).
    `settings` is a plain dict so an absent key and a key holding "" stay distinct.
    """
    id: Optional[Union[int, str]] = None
    fieldset_id: Optional[int] = None
    parent_id: Optional[Union[int, str]] = None
    label: str = "New Field"
    name: str = ""
    type: str = "text"
    menu_order: int = 0
    settings: dict[str, Any] = PydanticField(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("parent_id", mode="before")
    @classmethod
    def normalize_parent(cls, value: Any) -> Any:
        return normalize_parent_id(value)

    @property
    def is_temporary(self) -> bool:
        return isinstance(self.id, str) and self.id.startswith("temp-")
