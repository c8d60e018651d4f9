"""Fieldset Store - stages field edits locally and flushes them in one batched save"""

import asyncio
import time
import uuid
from typing import Any, Awaitable, Iterable, Optional, Union

from core.logging_config import get_logger, LogContext
from schemas.field import EditorField, normalize_parent_id
from services.field_tree_service import FieldForest, can_have_children, parent_key
from services.field_type_registry_service import FieldTypeRegistry, create_default_field_type_registry
from services.fieldset_validation_service import (
    FieldValidationError,
    is_field_name_duplicate,
    validate_field_name,
    validate_fieldset_data,
)
from services.openfields_client import OpenFieldsApiError, OpenFieldsClient

logger = get_logger(__name__)

TEMP_PREFIX = "temp-"
DEFAULT_FIELDSET_TITLE = "New Fieldset"


def is_temp_id(field_id: Any) -> bool:
    return isinstance(field_id, str) and field_id.startswith(TEMP_PREFIX)


def generate_temp_id() -> str:
    return f"{TEMP_PREFIX}{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def generate_fieldset_key() -> str:
    return f"fieldset_{uuid.uuid4().hex[:12]}"


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    result = ""
    while number:
        number, remainder = divmod(number, 36)
        result = digits[remainder] + result
    return result or "0"


FieldId = Union[int, str]


class FieldsetStore:
    """
    Editing session for one fieldset.

    `fields` always shows the staged state. Staging collections:

    - pending_additions: new fields carrying a temp id
    - pending_changes: field id (as str) -> partial patch, settings merged key-wise
    - pending_deletions: ids of persisted fields to delete

    Saves are not re-entrant; callers must wait for one save before starting the next.
    """

    def __init__(self, client: OpenFieldsClient, registry: Optional[FieldTypeRegistry] = None):
        self.client = client
        self.registry = registry or create_default_field_type_registry()

        self.fieldsets: list[dict] = []
        self.current_fieldset: Optional[dict] = None
        self.fields: list[EditorField] = []
        self.is_loading = False
        self.error: Optional[str] = None

        self.unsaved_changes = False
        self.pending_changes: dict[str, dict[str, Any]] = {}
        self.pending_additions: list[EditorField] = []
        self.pending_deletions: list[str] = []
        self.pending_fieldset_changes: dict[str, Any] = {}

        self.location_groups: list[dict] = []

    # Helpers

    def _reset_staging(self) -> None:
        self.pending_changes = {}
        self.pending_additions = []
        self.pending_deletions = []
        self.pending_fieldset_changes = {}
        self.unsaved_changes = False

    def _index_of(self, field_id: FieldId) -> int:
        key = str(field_id)
        for index, field in enumerate(self.fields):
            if str(field.id) == key:
                return index
        raise KeyError(f"Field {field_id} not found")

    def get_field(self, field_id: FieldId) -> EditorField:
        return self.fields[self._index_of(field_id)]

    def _sibling_index(self, field: EditorField) -> int:
        key = parent_key(field.parent_id)
        siblings = [str(item.id) for item in self.fields if parent_key(item.parent_id) == key]
        return siblings.index(str(field.id))

    def _current_fieldset_id(self) -> int:
        if not self.current_fieldset or self.current_fieldset.get("id") is None:
            raise ValueError("No fieldset selected")
        return self.current_fieldset["id"]

    async def _call(self, action: str, call: Awaitable[Any]) -> Any:
        self.is_loading = True
        self.error = None
        try:
            return await call
        except OpenFieldsApiError as e:
            self.error = e.message
            logger.warning(f"Failed to {action}: {e.message}")
            raise
        finally:
            self.is_loading = False

    # Fieldset actions

    async def fetch_fieldsets(self) -> list[dict]:
        self.fieldsets = await self._call("fetch fieldsets", self.client.list_fieldsets())
        return self.fieldsets

    async def fetch_fieldset(self, fieldset_id: int) -> dict:
        self.current_fieldset = await self._call("fetch fieldset", self.client.get_fieldset(fieldset_id))
        await self.fetch_fields(fieldset_id)
        return self.current_fieldset

    async def fetch_fields(self, fieldset_id: int) -> list[EditorField]:
        self.fields = await self._call("fetch fields", self.client.list_fields(fieldset_id))
        self._reset_staging()
        return self.fields

    async def new_fieldset(self) -> dict:
        """Persist a placeholder fieldset right away so the editor has an id"""
        data = {"title": DEFAULT_FIELDSET_TITLE, "field_key": generate_fieldset_key(), "is_active": True}
        fieldset = await self.create_fieldset(data)
        self.set_current_fieldset(fieldset)
        self.fields = []
        self._reset_staging()
        return fieldset

    async def create_fieldset(self, data: dict) -> dict:
        data = dict(data)
        data.setdefault("field_key", generate_fieldset_key())
        validate_fieldset_data(data, self.fieldsets)

        fieldset = await self._call("create fieldset", self.client.create_fieldset(data))
        self.fieldsets.append(fieldset)
        return fieldset

    async def update_fieldset(self, fieldset_id: int, data: dict) -> dict:
        validate_fieldset_data(data, self.fieldsets, fieldset_id=fieldset_id, partial=True)

        updated = await self._call("update fieldset", self.client.update_fieldset(fieldset_id, data))
        self.fieldsets = [updated if fieldset.get("id") == fieldset_id else fieldset for fieldset in self.fieldsets]
        if self.current_fieldset and self.current_fieldset.get("id") == fieldset_id:
            self.current_fieldset = updated
        return updated

    async def delete_fieldset(self, fieldset_id: int) -> None:
        await self._call("delete fieldset", self.client.delete_fieldset(fieldset_id))
        self.fieldsets = [fieldset for fieldset in self.fieldsets if fieldset.get("id") != fieldset_id]
        if self.current_fieldset and self.current_fieldset.get("id") == fieldset_id:
            self.current_fieldset = None
            self.fields = []
            self.location_groups = []
            self._reset_staging()

    async def duplicate_fieldset(self, fieldset_id: int) -> dict:
        fieldset = await self._call("duplicate fieldset", self.client.duplicate_fieldset(fieldset_id))
        self.fieldsets.append(fieldset)
        return fieldset

    def set_current_fieldset(self, fieldset: Optional[dict]) -> None:
        self.current_fieldset = fieldset

    def update_fieldset_local(self, data: dict) -> None:
        """Stage attribute changes of the current fieldset"""
        self._current_fieldset_id()
        self.pending_fieldset_changes.update(data)
        self.current_fieldset = {**self.current_fieldset, **data}
        self.unsaved_changes = True

    # Location actions

    async def fetch_locations(self, fieldset_id: int) -> list[dict]:
        self.location_groups = await self._call("fetch locations", self.client.get_locations(fieldset_id))
        return self.location_groups

    async def update_locations(self, groups: list[dict]) -> list[dict]:
        """Replace the location rules of the current fieldset; not staged"""
        fieldset_id = self._current_fieldset_id()
        self.location_groups = await self._call("update locations", self.client.update_locations(fieldset_id, groups))
        return self.location_groups

    # Local field actions

    def _check_parent(self, parent_id: Any, field_id: Optional[FieldId] = None) -> Optional[EditorField]:
        """Resolve a staged parent, rejecting anything that cannot hold field_id"""
        parent_id = normalize_parent_id(parent_id)
        if parent_id is None:
            return None
        if field_id is not None and str(parent_id) == str(field_id):
            raise FieldValidationError("A field cannot be its own parent")
        try:
            parent = self.get_field(parent_id)
        except KeyError:
            raise FieldValidationError(f"Parent field {parent_id} not found") from None
        if not can_have_children(parent, self.registry):
            raise FieldValidationError(f"Field type '{parent.type}' cannot contain sub fields")
        if field_id is not None and FieldForest(self.fields).is_descendant(parent_id, field_id):
            raise FieldValidationError("A field cannot be moved into one of its own sub fields")
        return parent

    def _siblings(self, parent_id: Any, exclude_id: Optional[FieldId] = None) -> list[EditorField]:
        key = parent_key(parent_id)
        return [
            field for field in self.fields
            if parent_key(field.parent_id) == key and (exclude_id is None or str(field.id) != str(exclude_id))
        ]

    def add_field_local(self, partial: Optional[dict] = None) -> EditorField:
        """
        Stage a new field under a temp id.

        An explicit name is sanitized and must be free in its parent scope; a
        generated one is made unique. Type defaults seed the settings unless
        the partial brings its own.
        """
        partial = dict(partial or {})
        temp_id = generate_temp_id()
        parent = self._check_parent(partial.get("parent_id"))
        parent_id = parent.id if parent else None
        siblings = self._siblings(parent_id)

        if partial.get("name"):
            name = validate_field_name(partial["name"], siblings)
        else:
            name = f"field_{int(time.time() * 1000)}"
            while is_field_name_duplicate(name, siblings):
                name = f"{name}_{uuid.uuid4().hex[:4]}"

        field_type = partial.get("type", "text")
        data = {
            "label": "New Field",
            "type": field_type,
            "settings": self.registry.get_defaults(field_type),
            **partial,
            "id": temp_id,
            "name": name,
            "parent_id": parent_id,
            "fieldset_id": self.current_fieldset.get("id") if self.current_fieldset else None,
            "menu_order": len(siblings),
        }
        field = EditorField.model_validate(data)

        self.fields.append(field)
        self.pending_additions.append(field)
        self.unsaved_changes = True
        return field

    def update_field_local(self, field_id: FieldId, patch: dict) -> EditorField:
        key = str(field_id)
        index = self._index_of(key)
        current = self.fields[index]
        patch = dict(patch)

        if "name" in patch or "parent_id" in patch:
            parent_id = current.parent_id
            if "parent_id" in patch:
                parent = self._check_parent(patch["parent_id"], key)
                parent_id = parent.id if parent else None
                patch["parent_id"] = parent_id
            field_name = validate_field_name(patch.get("name", current.name), self._siblings(parent_id, exclude_id=key))
            if "name" in patch:
                patch["name"] = field_name

        existing = self.pending_changes.get(key, {})
        merged_patch = {**existing, **patch}
        merged_patch["settings"] = {**existing.get("settings", {}), **patch.get("settings", {})}
        self.pending_changes[key] = merged_patch

        data = current.model_dump()
        data.update({name: value for name, value in patch.items() if name not in ("id", "settings")})
        data["settings"] = {**current.settings, **patch.get("settings", {})}
        self.fields[index] = EditorField.model_validate(data)

        self.unsaved_changes = True
        return self.fields[index]

    def delete_field_local(self, field_id: FieldId) -> None:
        """
        Remove a field and its descendants from the visible list.

        Only a persisted field is queued for deletion; its persisted children go
        with it on the backend. Temp fields are simply forgotten.
        """
        key = str(field_id)
        self._index_of(key)
        removed = {key} | FieldForest(self.fields).descendant_ids(key)

        self.fields = [field for field in self.fields if str(field.id) not in removed]
        self.pending_additions = [field for field in self.pending_additions if str(field.id) not in removed]
        for removed_key in removed:
            self.pending_changes.pop(removed_key, None)

        if not is_temp_id(key) and key not in self.pending_deletions:
            self.pending_deletions.append(key)
        self.unsaved_changes = True

    def reorder_fields_local(self, new_order: Iterable[EditorField]) -> None:
        """Replace the list wholesale; menu_order is derived from position on save"""
        new_order = list(new_order)
        if sorted(str(field.id) for field in new_order) != sorted(str(field.id) for field in self.fields):
            raise FieldValidationError("A new order must hold exactly the current fields")
        self.fields = new_order
        self.unsaved_changes = True

    def move_field_to_parent(self, field_id: FieldId, new_parent_id: Optional[FieldId]) -> EditorField:
        key = str(field_id)
        moved = self.update_field_local(key, {"parent_id": normalize_parent_id(new_parent_id)})
        # Last among its new siblings
        self.fields.pop(self._index_of(key))
        self.fields.append(moved)
        return moved

    def copy_field_local(self, source: Union[FieldId, EditorField], target_parent_id: Optional[FieldId] = None) -> EditorField:
        """
        Stage a copy of a field (and its sub fields) under target_parent_id.

        `source` may be a field of another fieldset.
        """
        if isinstance(source, EditorField):
            original = source
            descendants = []
        else:
            original = self.get_field(source)
            descendants = [field for field, _ in FieldForest(self.fields).walk(original.id)]

        copy = self.add_field_local({
            "label": f"{original.label} (Copy)",
            "name": f"{original.name}_copy_{_base36(int(time.time() * 1000))}",
            "type": original.type,
            "parent_id": target_parent_id,
            "settings": dict(original.settings),
        })

        id_map = {str(original.id): copy.id}
        for child in descendants:
            child_copy = self.add_field_local({
                "label": child.label,
                "name": child.name,
                "type": child.type,
                "parent_id": id_map[parent_key(child.parent_id)],
                "settings": dict(child.settings),
            })
            id_map[str(child.id)] = child_copy.id
        return copy

    # Saving

    async def save_all_changes(self) -> None:
        """
        Flush staged changes: deletes, then creates, then updates.

        Calls inside a phase run concurrently. Every successful call retires its
        own staging entry, so after a failure only what did not go through is
        still staged and a retry never repeats a completed create.
        """
        fieldset_id = self._current_fieldset_id()
        if self.pending_fieldset_changes:
            validate_fieldset_data(self.pending_fieldset_changes, self.fieldsets, fieldset_id=fieldset_id, partial=True)

        self.error = None
        with LogContext(fieldset_id=fieldset_id):
            logger.info_ctx(
                "Saving staged field changes",
                deletions=len(self.pending_deletions),
                additions=len(self.pending_additions),
                changes=len(self.pending_changes),
            )
            try:
                await self._flush_deletions()
                await self._flush_additions(fieldset_id)
                await self._flush_changes()
                await self._flush_order(fieldset_id)
                await self._flush_fieldset(fieldset_id)
            except OpenFieldsApiError as e:
                self.error = e.message
                logger.error(f"Saving fields failed: {e.message}")
                raise

        self.unsaved_changes = False

    async def _run_phase(self, calls: list[Awaitable[Any]]) -> None:
        if not calls:
            return
        results = await asyncio.gather(*calls, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _flush_deletions(self) -> None:
        self.pending_deletions = [key for key in self.pending_deletions if not is_temp_id(key)]

        async def delete(key: str) -> None:
            await self.client.delete_field(int(key))
            self.pending_deletions.remove(key)

        await self._run_phase([delete(key) for key in list(self.pending_deletions)])

    def _create_payload(self, field: EditorField) -> EditorField:
        latest = self.get_field(field.id)
        data = latest.model_dump()
        patch = self.pending_changes.get(str(field.id), {})
        data.update({name: value for name, value in patch.items() if name not in ("id", "settings")})
        data["settings"] = {**latest.settings, **patch.get("settings", {})}
        data["menu_order"] = self._sibling_index(latest)
        return EditorField.model_validate(data)

    def _swap_id(self, temp_key: str, created: EditorField) -> None:
        self.fields[self._index_of(temp_key)] = created
        self.pending_additions = [field for field in self.pending_additions if str(field.id) != temp_key]
        self.pending_changes.pop(temp_key, None)

        for index, field in enumerate(self.fields):
            if str(field.parent_id) == temp_key:
                self.fields[index] = field.model_copy(update={"parent_id": created.id})
        self.pending_additions = [
            field.model_copy(update={"parent_id": created.id}) if str(field.parent_id) == temp_key else field
            for field in self.pending_additions
        ]
        for patch in self.pending_changes.values():
            if str(patch.get("parent_id")) == temp_key:
                patch["parent_id"] = created.id

    async def _flush_additions(self, fieldset_id: int) -> None:
        async def create(field: EditorField) -> None:
            created = await self.client.create_field(fieldset_id, self._create_payload(field))
            self._swap_id(str(field.id), created)

        # Sub fields of unsaved parents wait for the parent's server id
        while self.pending_additions:
            ready = [
                field for field in self.pending_additions
                if not is_temp_id(self.get_field(field.id).parent_id)
            ]
            if not ready:
                raise FieldValidationError("Pending fields reference parents that cannot be created")
            await self._run_phase([create(field) for field in ready])

    async def _flush_changes(self) -> None:
        async def update(key: str) -> None:
            field = self.get_field(key)
            patch = self.pending_changes[key]
            payload = field.model_copy(update={
                "settings": {**field.settings, **patch.get("settings", {})},
                "menu_order": self._sibling_index(field),
            })
            updated = await self.client.update_field(int(key), payload)
            self.fields[self._index_of(key)] = updated
            self.pending_changes.pop(key, None)

        for key in [key for key in self.pending_changes if not is_temp_id(key)]:
            try:
                self._index_of(key)
            except KeyError:
                self.pending_changes.pop(key)

        await self._run_phase([update(key) for key in list(self.pending_changes) if not is_temp_id(key)])

    async def _flush_order(self, fieldset_id: int) -> None:
        order = []
        for field in self.fields:
            if is_temp_id(field.id):
                continue
            position = self._sibling_index(field)
            if position != field.menu_order:
                order.append({"id": int(field.id), "menu_order": position})
        if not order:
            return

        await self.client.bulk_reorder(fieldset_id, order)
        positions = {str(item["id"]): item["menu_order"] for item in order}
        self.fields = [
            field.model_copy(update={"menu_order": positions[str(field.id)]}) if str(field.id) in positions else field
            for field in self.fields
        ]

    async def _flush_fieldset(self, fieldset_id: int) -> None:
        if not self.pending_fieldset_changes:
            return
        updated = await self.client.update_fieldset(fieldset_id, self.pending_fieldset_changes)
        self.current_fieldset = updated
        self.fieldsets = [updated if fieldset.get("id") == fieldset_id else fieldset for fieldset in self.fieldsets]
        self.pending_fieldset_changes = {}
