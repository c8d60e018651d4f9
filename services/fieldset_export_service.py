"""Fieldset export, import and duplication"""

from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, Depends
from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.logging_config import get_logger
from db.session import get_db
from models import Field, Fieldset
from repositories.field_repository import FieldRepository
from repositories.fieldset_repository import FieldsetRepository, LOCATION_SETTINGS_KEY
from schemas.field import FieldCreate, FieldRead
from schemas.fieldset import FieldsetCreate
from services.field_type_registry_service import FieldTypeRegistry, get_field_type_registry

logger = get_logger(__name__)

EXPORT_VERSION = "1.0.0"

WIRE_FIELD_KEYS = (
    "label", "name", "type", "placeholder", "default_value", "instructions", "required",
    "conditional_logic", "wrapper_config", "field_config", "menu_order",
)


def _wire_record(field: Field) -> dict[str, Any]:
    return FieldRead.model_validate(field).model_dump(mode="json", exclude={"created_at", "updated_at"})


def _rows_to_groups(rows: list[dict]) -> list[dict]:
    """Legacy exports carry raw location rows instead of groups"""
    groups: dict[int, list[dict]] = {}
    for row in rows:
        groups.setdefault(int(row.get("group_id") or 0), []).append({
            "type": row.get("param", ""),
            "operator": row.get("operator", "=="),
            "value": row.get("value", ""),
        })
    return [{"rules": rules} for _, rules in sorted(groups.items())]


class FieldsetExportService:
    def __init__(self, db: Session, registry: FieldTypeRegistry):
        self.db = db
        self.fieldset_repository = FieldsetRepository(db)
        self.field_repository = FieldRepository(db, registry)

    def export_fieldset(self, fieldset: Fieldset) -> dict[str, Any]:
        settings = dict(fieldset.settings or {})
        settings.pop(LOCATION_SETTINGS_KEY, None)

        return {
            "version": EXPORT_VERSION,
            "exported": datetime.now(timezone.utc).isoformat(),
            "fieldset": {
                "title": fieldset.title,
                "field_key": fieldset.field_key,
                "description": fieldset.description,
                "is_active": fieldset.is_active,
                "settings": settings,
                "menu_order": fieldset.menu_order,
                "fields": [_wire_record(field) for field in self.field_repository.get_all_by_fieldset(fieldset)],
                "location_groups": fieldset.location_groups,
            },
        }

    def _copy_fields(self, records: list[dict], target: Fieldset) -> int:
        """
        Create wire records in the target fieldset, parents before children.

        Parent links are remapped from the source ids to the new ids.
        """
        id_map: dict[Any, int] = {}
        remaining = list(records)
        while remaining:
            ready = [
                record for record in remaining
                if not record.get("parent_id") or record.get("parent_id") in id_map
            ]
            if not ready:
                raise HTTPException(status_code=400, detail="Fields reference parents that are not part of the import")

            for record in ready:
                data = {key: record[key] for key in WIRE_FIELD_KEYS if key in record and record[key] is not None}
                data["parent_id"] = id_map.get(record.get("parent_id")) if record.get("parent_id") else None
                try:
                    field_data = FieldCreate.model_validate(data)
                except ValidationError as e:
                    raise HTTPException(status_code=400, detail=f"Invalid field '{record.get('name')}': {e.errors()[0]['msg']}")

                field = self.field_repository.create(field_data, target, commit=False)
                if record.get("id") is not None:
                    id_map[record["id"]] = field.id
            ready_ids = {id(record) for record in ready}
            remaining = [record for record in remaining if id(record) not in ready_ids]
        return len(records)

    def import_fieldset(self, import_data: dict[str, Any]) -> Fieldset:
        """Create a new fieldset (with a fresh key) from an export payload"""
        if not isinstance(import_data, dict) or not isinstance(import_data.get("fieldset"), dict):
            raise HTTPException(status_code=400, detail="Invalid import data")

        source = import_data["fieldset"]
        location_groups = source.get(LOCATION_SETTINGS_KEY)
        if location_groups is None and source.get("locations"):
            location_groups = _rows_to_groups(source["locations"])

        settings = dict(source.get("settings") or {})
        if location_groups is not None:
            settings[LOCATION_SETTINGS_KEY] = location_groups

        try:
            fieldset_data = FieldsetCreate(
                title=source.get("title") or "Imported Fieldset",
                description=source.get("description") or "",
                is_active=source.get("is_active", True),
                settings=settings,
                menu_order=source.get("menu_order") or 0,
            )
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid fieldset: {e.errors()[0]['msg']}")

        try:
            fieldset = self.fieldset_repository.create(fieldset_data, commit=False)
            count = self._copy_fields(list(source.get("fields") or []), fieldset)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(fieldset)
        logger.info_ctx("Imported fieldset", fieldset_id=fieldset.id, fields=count)
        return fieldset

    def duplicate_fieldset(self, fieldset: Fieldset) -> Fieldset:
        """Copy a fieldset with its fields and location rules"""
        settings = dict(fieldset.settings or {})
        settings[LOCATION_SETTINGS_KEY] = fieldset.location_groups

        fieldset_data = FieldsetCreate(
            title=f"{fieldset.title} (Copy)",
            description=fieldset.description or "",
            is_active=fieldset.is_active,
            settings=settings,
            menu_order=fieldset.menu_order + 1,
        )
        records = [_wire_record(field) for field in self.field_repository.get_all_by_fieldset(fieldset)]

        try:
            copy = self.fieldset_repository.create(fieldset_data, commit=False)
            self._copy_fields(records, copy)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(copy)
        logger.info_ctx("Duplicated fieldset", source_id=fieldset.id, fieldset_id=copy.id)
        return copy


def get_fieldset_export_service(
    db: Session = Depends(get_db),
    registry: FieldTypeRegistry = Depends(get_field_type_registry),
) -> FieldsetExportService:
    return FieldsetExportService(db, registry)
