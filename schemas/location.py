"""Location rule schemas"""

from typing import Any

from pydantic import BaseModel, Field as PydanticField, field_validator


def _as_string(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class LocationRule(BaseModel):
    type: str = ""
    operator: str = "=="
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, value: Any) -> Any:
        return _as_string(value)


class LocationGroup(BaseModel):
    id: str = ""
    rules: list[LocationRule] = PydanticField(default_factory=list)


class LocationContext(BaseModel):
    """
    Runtime context of the screen being rendered.

    Extra keys are kept so custom location types can read them.
    """
    post_type: str = ""
    page_template: str = ""
    categories: list[str] = PydanticField(default_factory=list)
    post_format: str = "standard"
    taxonomies: list[str] = PydanticField(default_factory=list)
    user_roles: list[str] = PydanticField(default_factory=list)
    options_page: str = ""

    model_config = {"extra": "allow"}

    @field_validator("post_type", "page_template", "post_format", "options_page", mode="before")
    @classmethod
    def coerce_scalar(cls, value: Any) -> Any:
        return _as_string(value)

    @field_validator("categories", "taxonomies", "user_roles", mode="before")
    @classmethod
    def coerce_members(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        return [_as_string(item) for item in value]


class LocationOption(BaseModel):
    value: str
    label: str


class LocationTypeRead(BaseModel):
    key: str
    label: str
    options: list[LocationOption] = PydanticField(default_factory=list)
