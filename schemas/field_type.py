"""Field type schemas"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field as PydanticField


class FieldCategory(str, Enum):
    BASIC = "basic"
    CHOICE = "choice"
    CONTENT = "content"
    RELATIONAL = "relational"
    LAYOUT = "layout"
    DATE_TIME = "date_time"


class SettingDefinition(BaseModel):
    """One configurable setting of a field type"""
    type: str
    label: str = ""
    default: Any = None
    choices: Optional[dict[str, str]] = None
    multiple: bool = False

    model_config = {"frozen": True}


class FieldTypeDefinition(BaseModel):
    """Registered field type: which settings are legal, their defaults and palette metadata"""
    key: str = PydanticField(..., min_length=1)
    label: str
    category: FieldCategory = FieldCategory.BASIC
    description: str = ""
    icon: Optional[str] = None
    has_sub_fields: bool = False
    settings_schema: dict[str, SettingDefinition] = PydanticField(default_factory=dict)

    model_config = {"frozen": True}


class FieldTypeSummary(BaseModel):
    """Palette entry returned by the field type catalog"""
    label: str
    category: FieldCategory
