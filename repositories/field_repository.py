"""Field Repository - data access layer for fields"""

from fastapi import HTTPException, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.logging_config import get_logger
from db.session import get_db
from models import Field, Fieldset
from schemas.field import FieldCreate, FieldOrderItem
from services.field_type_registry_service import FieldTypeRegistry, get_field_type_registry

logger = get_logger(__name__)


class FieldRepository:
    def __init__(self, session: Session, registry: FieldTypeRegistry):
        self.session = session
        self.registry = registry

    def get_or_404(self, field_id: int) -> Field:
        """Get a field by ID"""
        field = self.session.get(Field, field_id)
        if not field:
            raise HTTPException(status_code=404, detail="Field not found")
        return field

    def get_all_by_fieldset(self, fieldset: Fieldset) -> list[Field]:
        """Wire records of a fieldset ordered by menu_order"""
        stmt = (
            select(Field)
            .where(Field.fieldset_id == fieldset.id)
            .order_by(Field.menu_order, Field.id)
        )
        return list(self.session.scalars(stmt).all())

    def get_children(self, field: Field) -> list[Field]:
        stmt = select(Field).where(Field.parent_id == field.id).order_by(Field.menu_order, Field.id)
        return list(self.session.scalars(stmt).all())

    def _check_type(self, type_key: str) -> None:
        if not self.registry.exists(type_key):
            raise HTTPException(status_code=400, detail=f"Field type '{type_key}' not found")

    def _check_parent(self, parent_id: int | None, fieldset_id: int, field_id: int | None = None) -> None:
        if parent_id is None:
            return
        if field_id is not None and parent_id == field_id:
            raise HTTPException(status_code=400, detail="A field cannot be its own parent")

        parent = self.session.get(Field, parent_id)
        if not parent or parent.fieldset_id != fieldset_id:
            raise HTTPException(status_code=400, detail=f"Parent field {parent_id} not found in this fieldset")
        if not self.registry.has_sub_fields(parent.type):
            raise HTTPException(status_code=400, detail=f"Field type '{parent.type}' cannot contain sub fields")

        if field_id is not None:
            # Walk up from the new parent; reaching the field itself would create a cycle
            ancestor = parent
            while ancestor is not None and ancestor.parent_id is not None:
                if ancestor.parent_id == field_id:
                    raise HTTPException(status_code=400, detail="A field cannot be moved into its own sub field")
                ancestor = self.session.get(Field, ancestor.parent_id)

    def _check_name(self, name: str, fieldset_id: int, parent_id: int | None, field_id: int | None = None) -> None:
        stmt = (
            select(Field)
            .where(Field.fieldset_id == fieldset_id)
            .where(Field.name == name)
        )
        stmt = stmt.where(Field.parent_id.is_(None)) if parent_id is None else stmt.where(Field.parent_id == parent_id)
        if field_id is not None:
            stmt = stmt.where(Field.id != field_id)

        if self.session.scalar(stmt):
            raise HTTPException(
                status_code=409,
                detail=f"Field with name '{name}' already exists at this level"
            )

    def create(self, field_data: FieldCreate, fieldset: Fieldset, commit: bool = True) -> Field:
        """Create a field in a fieldset"""
        self._check_type(field_data.type)
        self._check_parent(field_data.parent_id, fieldset.id)
        self._check_name(field_data.name, fieldset.id, field_data.parent_id)

        field_dict = field_data.model_dump()
        field_dict["field_config"] = self.registry.filter_settings(field_data.type, field_dict["field_config"] or {})
        field = Field(**field_dict, fieldset_id=fieldset.id)

        self.session.add(field)
        if commit:
            self.session.commit()
            self.session.refresh(field)
        else:
            self.session.flush()

        logger.info_ctx("Created field", fieldset_id=fieldset.id, field_id=field.id, type=field.type)
        return field

    def update(self, field: Field, update_data: dict) -> Field:
        """
        Partial update; only keys that were sent are applied.

        Incoming type-specific settings are filtered against the (new) type.
        Stored settings that no longer apply after a type change are kept.
        """
        type_key = update_data.get("type") or field.type
        if "type" in update_data:
            self._check_type(type_key)

        parent_id = update_data["parent_id"] if "parent_id" in update_data else field.parent_id
        if "parent_id" in update_data:
            self._check_parent(parent_id, field.fieldset_id, field_id=field.id)

        if "name" in update_data or "parent_id" in update_data:
            self._check_name(update_data.get("name") or field.name, field.fieldset_id, parent_id, field_id=field.id)

        if "field_config" in update_data:
            incoming = self.registry.filter_settings(type_key, update_data.pop("field_config") or {})
            field.field_config = {**(field.field_config or {}), **incoming}

        for key, value in update_data.items():
            if key in ("label", "name", "type", "required", "menu_order") and value is None:
                continue
            if hasattr(field, key):
                setattr(field, key, value)

        self.session.commit()
        self.session.refresh(field)
        return field

    def delete(self, field: Field) -> None:
        """Delete a field and every field nested under it"""
        field_id = field.id
        self.delete_tree(field)
        self.session.commit()
        logger.info_ctx("Deleted field", field_id=field_id)

    def delete_tree(self, field: Field) -> None:
        for child in self.get_children(field):
            self.delete_tree(child)
        self.session.delete(field)
        self.session.flush()

    def bulk_reorder(self, fieldset: Fieldset, items: list[FieldOrderItem]) -> list[Field]:
        """Set menu_order for the given fields of a fieldset"""
        fields = {field.id: field for field in self.get_all_by_fieldset(fieldset)}
        for item in items:
            field = fields.get(item.id)
            if field is None:
                raise HTTPException(status_code=400, detail=f"Field {item.id} does not belong to this fieldset")
            field.menu_order = item.menu_order

        self.session.commit()
        return self.get_all_by_fieldset(fieldset)


def get_field_repository(
    db: Session = Depends(get_db),
    registry: FieldTypeRegistry = Depends(get_field_type_registry),
) -> FieldRepository:
    """Dependency for field repository"""
    return FieldRepository(db, registry)
