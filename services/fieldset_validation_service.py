"""Fieldset Validation Service - checks run before anything is sent to the backend"""

import re
from typing import Any, Iterable, Mapping, Optional

SLUG_PATTERN = re.compile(r'^[a-z0-9_]+$')


class FieldsetValidationError(ValueError):
    """Invalid fieldset data; `errors` maps attribute name to message"""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{key}: {message}" for key, message in errors.items()))


class FieldValidationError(ValueError):
    """Invalid field name or placement"""


def sanitize_field_name(name: Optional[str]) -> str:
    """Lowercase, whitespace to underscores, drop anything outside [a-z0-9_-]"""
    if not name:
        return ""
    sanitized = re.sub(r'\s+', '_', name.lower())
    return re.sub(r'[^a-z0-9_-]', '', sanitized)


def is_valid_field_name(name: Optional[str]) -> bool:
    return len(sanitize_field_name(name)) > 0


def _name_of(item: Any) -> str:
    if isinstance(item, Mapping):
        return item.get("name", "")
    return getattr(item, "name", "")


def is_field_name_duplicate(name: str, other_fields: Iterable[Any]) -> bool:
    sanitized = sanitize_field_name(name)
    return any(sanitize_field_name(_name_of(field)) == sanitized for field in other_fields)


def get_field_names(fields: Iterable[Any], exclude_id: Any = None) -> list[str]:
    names = []
    for field in fields:
        field_id = field.get("id") if isinstance(field, Mapping) else getattr(field, "id", None)
        if exclude_id is not None and str(field_id) == str(exclude_id):
            continue
        names.append(_name_of(field))
    return names


def validate_fieldset_data(
    data: Mapping[str, Any],
    existing_fieldsets: Iterable[Any] = (),
    fieldset_id: Any = None,
    partial: bool = False,
) -> None:
    """
    Validate fieldset attributes against the known fieldsets.

    `fieldset_id` is excluded from the uniqueness check so a fieldset can keep
    its own key. With `partial`, only the attributes present are checked.
    """
    errors: dict[str, str] = {}

    if not partial or "title" in data:
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            errors["title"] = "Title is required"

    if not partial or "field_key" in data:
        field_key = data.get("field_key")
        if not field_key:
            errors["field_key"] = "Field key is required"
        elif not SLUG_PATTERN.match(field_key):
            errors["field_key"] = "Field key may only contain lowercase letters, numbers and underscores"
        else:
            for fieldset in existing_fieldsets:
                other_id = fieldset.get("id") if isinstance(fieldset, Mapping) else getattr(fieldset, "id", None)
                other_key = fieldset.get("field_key") if isinstance(fieldset, Mapping) else getattr(fieldset, "field_key", None)
                if fieldset_id is not None and str(other_id) == str(fieldset_id):
                    continue
                if other_key == field_key:
                    errors["field_key"] = f"Field key '{field_key}' is already used by another fieldset"
                    break

    if errors:
        raise FieldsetValidationError(errors)


def validate_field_name(name: str, siblings: Iterable[Any] = ()) -> str:
    """Sanitize a field name and make sure it is usable in its scope"""
    sanitized = sanitize_field_name(name)
    if not sanitized:
        raise FieldValidationError("Field name is required")
    if not re.match(r'^[a-z0-9_]+$', sanitized):
        raise FieldValidationError(f"Field name '{sanitized}' may only contain lowercase letters, numbers and underscores")
    if is_field_name_duplicate(sanitized, siblings):
        raise FieldValidationError(f"Field name '{sanitized}' is already used")
    return sanitized
