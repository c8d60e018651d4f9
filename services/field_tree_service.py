"""Field Tree Service - wire shape translation and parent/child helpers"""

from typing import Any, Iterable, Iterator, Mapping, Optional, Union

from schemas.field import EditorField, normalize_parent_id
from services.field_type_registry_service import FieldTypeRegistry

# Settings that live in their own wire columns; everything else goes to field_config
WIRE_SCALAR_SETTINGS = ("placeholder", "default_value", "instructions")
KNOWN_SETTING_KEYS = frozenset(WIRE_SCALAR_SETTINGS + ("required", "wrapper", "conditional_logic"))

FIELD_ATTRIBUTES = ("id", "fieldset_id", "label", "name", "type", "menu_order", "created_at", "updated_at")


def _get(record: Any, key: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(key, default)
    return getattr(record, key, default)


def _has(record: Any, key: str) -> bool:
    if isinstance(record, Mapping):
        return key in record
    return hasattr(record, key)


def from_wire(record: Any) -> EditorField:
    """
    Build an editor field from a flat wire record (dict or ORM row).

    Universal settings are seeded from their columns, conditional_logic and
    wrapper_config are merged only when present, and field_config is spread
    over the result.
    """
    settings: dict[str, Any] = {}

    for key in WIRE_SCALAR_SETTINGS + ("required",):
        if _has(record, key):
            settings[key] = _get(record, key)

    conditional_logic = _get(record, "conditional_logic")
    if conditional_logic is not None:
        settings["conditional_logic"] = conditional_logic

    wrapper = _get(record, "wrapper_config")
    if wrapper is not None:
        settings["wrapper"] = wrapper

    settings.update(_get(record, "field_config") or {})

    data = {key: _get(record, key) for key in FIELD_ATTRIBUTES if _get(record, key) is not None}
    data["parent_id"] = normalize_parent_id(_get(record, "parent_id"))
    data["settings"] = settings
    return EditorField(**data)


def to_wire(field: Union[EditorField, Mapping[str, Any]]) -> dict[str, Any]:
    """
    Flatten an editor field into a wire record.

    Emission is driven by key presence: a setting present with an empty value
    is sent (so the backend can clear it), an absent setting is omitted.
    """
    if isinstance(field, EditorField):
        data = field.model_dump(exclude_unset=False)
        has_parent = True
    else:
        data = dict(field)
        has_parent = "parent_id" in data

    settings = dict(data.get("settings") or {})
    record: dict[str, Any] = {}

    for key in ("label", "name", "type", "menu_order"):
        if key in data and data[key] is not None:
            record[key] = data[key]

    if has_parent:
        record["parent_id"] = normalize_parent_id(data.get("parent_id"))

    for key in WIRE_SCALAR_SETTINGS:
        if key in settings:
            value = settings[key]
            record[key] = "" if value is None else value

    if "required" in settings:
        record["required"] = settings["required"]

    if "conditional_logic" in settings:
        record["conditional_logic"] = settings["conditional_logic"] or []

    if "wrapper" in settings:
        record["wrapper_config"] = settings["wrapper"] or {}

    record["field_config"] = {
        key: value for key, value in settings.items() if key not in KNOWN_SETTING_KEYS
    }
    return record


def parent_key(value: Any) -> Optional[str]:
    """Normalized parent id as a string, None for root level"""
    value = normalize_parent_id(value)
    return None if value is None else str(value)


def get_child_fields(fields: Iterable[EditorField], parent_id: Any) -> list[EditorField]:
    """Children of a parent in menu_order order; ids compare as strings"""
    key = parent_key(parent_id)
    children = [field for field in fields if parent_key(field.parent_id) == key]
    return sorted(children, key=lambda field: field.menu_order)


def get_root_fields(fields: Iterable[EditorField]) -> list[EditorField]:
    return get_child_fields(fields, None)


def can_have_children(field: EditorField, registry: FieldTypeRegistry) -> bool:
    return registry.has_sub_fields(field.type)


class FieldForest:
    """
    Arena of fields with a parent index.

    Depth is unbounded; cycles in bad data are cut instead of recursing forever.
    """

    def __init__(self, fields: Iterable[EditorField]):
        self.fields: dict[str, EditorField] = {}
        self._children: dict[Optional[str], list[str]] = {}
        for field in fields:
            self.fields[str(field.id)] = field
        for key, field in self.fields.items():
            self._children.setdefault(parent_key(field.parent_id), []).append(key)

    def get(self, field_id: Any) -> Optional[EditorField]:
        return self.fields.get(str(field_id))

    def children(self, parent_id: Any = None) -> list[EditorField]:
        keys = self._children.get(parent_key(parent_id), [])
        return sorted((self.fields[key] for key in keys), key=lambda field: field.menu_order)

    def roots(self) -> list[EditorField]:
        return self.children(None)

    def walk(self, parent_id: Any = None, depth: int = 0) -> Iterator[tuple[EditorField, int]]:
        """Depth-first (field, depth) pairs in display order"""
        yield from self._walk(parent_id, depth, set())

    def _walk(self, parent_id: Any, depth: int, seen: set[str]) -> Iterator[tuple[EditorField, int]]:
        for field in self.children(parent_id):
            key = str(field.id)
            if key in seen:
                continue
            seen.add(key)
            yield field, depth
            yield from self._walk(field.id, depth + 1, seen)

    def descendant_ids(self, field_id: Any) -> set[str]:
        return {str(field.id) for field, _ in self.walk(field_id)}

    def is_descendant(self, field_id: Any, ancestor_id: Any) -> bool:
        return str(field_id) in self.descendant_ids(ancestor_id)
