"""Fieldset Repository - data access layer for fieldsets"""

import uuid

from fastapi import HTTPException, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from core.logging_config import get_logger
from db.session import get_db
from models import Fieldset
from repositories.location_repository import LocationRepository
from schemas.fieldset import FieldsetCreate

logger = get_logger(__name__)

LOCATION_SETTINGS_KEY = "location_groups"


def generate_field_key() -> str:
    return f"fieldset_{uuid.uuid4().hex[:12]}"


class FieldsetRepository:
    def __init__(self, session: Session):
        self.session = session
        self.locations = LocationRepository(session)

    def get_or_404(self, fieldset_id: int) -> Fieldset:
        """Get a fieldset by ID"""
        stmt = (
            select(Fieldset)
            .where(Fieldset.id == fieldset_id)
            .options(selectinload(Fieldset.locations))
        )
        fieldset = self.session.scalar(stmt)
        if not fieldset:
            raise HTTPException(status_code=404, detail="Fieldset not found")
        return fieldset

    def get_all(self, active_only: bool = False) -> list[Fieldset]:
        """All fieldsets ordered by menu_order, then id"""
        stmt = select(Fieldset).options(selectinload(Fieldset.locations))
        if active_only:
            stmt = stmt.where(Fieldset.is_active == True)
        stmt = stmt.order_by(Fieldset.menu_order, Fieldset.id)
        return list(self.session.scalars(stmt).all())

    def get_by_key(self, field_key: str) -> Fieldset | None:
        return self.session.scalar(select(Fieldset).where(Fieldset.field_key == field_key))

    def ensure_key_available(self, field_key: str, exclude_id: int | None = None) -> None:
        existing = self.get_by_key(field_key)
        if existing and existing.id != exclude_id:
            raise HTTPException(
                status_code=409,
                detail=f"Fieldset with key '{field_key}' already exists"
            )

    def unique_key(self) -> str:
        field_key = generate_field_key()
        while self.get_by_key(field_key):
            field_key = generate_field_key()
        return field_key

    def create(self, fieldset_data: FieldsetCreate, commit: bool = True) -> Fieldset:
        """Create a new fieldset; a key is generated when none is given"""
        data = fieldset_data.model_dump()
        if data.get("field_key"):
            self.ensure_key_available(data["field_key"])
        else:
            data["field_key"] = self.unique_key()

        settings = dict(data.pop("settings") or {})
        location_groups = settings.pop(LOCATION_SETTINGS_KEY, None)

        fieldset = Fieldset(**data, settings=settings)
        self.session.add(fieldset)
        self.session.flush()

        if location_groups is not None:
            self.locations.replace_groups(fieldset, location_groups, commit=False)

        if commit:
            self.session.commit()
            self.session.refresh(fieldset)

        logger.info_ctx("Created fieldset", fieldset_id=fieldset.id, field_key=fieldset.field_key)
        return fieldset

    def update(self, fieldset: Fieldset, update_data: dict) -> Fieldset:
        """Update a fieldset with the provided data"""
        if update_data.get("field_key") and update_data["field_key"] != fieldset.field_key:
            self.ensure_key_available(update_data["field_key"], exclude_id=fieldset.id)

        if "settings" in update_data:
            settings = dict(update_data.pop("settings") or {})
            location_groups = settings.pop(LOCATION_SETTINGS_KEY, None)
            if location_groups is not None:
                self.locations.replace_groups(fieldset, location_groups, commit=False)
            fieldset.settings = settings

        for key, value in update_data.items():
            if value is not None and hasattr(fieldset, key):
                setattr(fieldset, key, value)

        self.session.commit()
        self.session.refresh(fieldset)
        return fieldset

    def delete(self, fieldset: Fieldset) -> None:
        """Hard delete; fields and location rules go with it"""
        fieldset_id = fieldset.id
        self.session.delete(fieldset)
        self.session.commit()
        logger.info_ctx("Deleted fieldset", fieldset_id=fieldset_id)


def get_fieldset_repository(db: Session = Depends(get_db)) -> FieldsetRepository:
    """Dependency for fieldset repository"""
    return FieldsetRepository(db)
