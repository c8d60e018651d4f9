"""Location Repository - data access for fieldset location rules"""

from typing import Any, Iterable

from fastapi import Depends
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from core.logging_config import get_logger
from db.session import get_db
from models import Fieldset, Location
from models.location import group_location_rows
from schemas.location import LocationGroup

logger = get_logger(__name__)


def build_location_rows(fieldset_id: int, groups: Iterable[Any]) -> list[Location]:
    """
    Flatten location groups into rule rows.

    Rules without a type are dropped and groups are re-indexed from 0,
    so a group left empty does not leave a gap.
    """
    rows = []
    group_index = 0
    for group in groups:
        if not isinstance(group, LocationGroup):
            group = LocationGroup.model_validate(group if isinstance(group, dict) else {"rules": group})
        rules = [rule for rule in group.rules if rule.type]
        if not rules:
            continue
        for rule in rules:
            rows.append(Location(
                fieldset_id=fieldset_id,
                param=rule.type,
                operator=rule.operator or "==",
                value=rule.value,
                group_id=group_index,
            ))
        group_index += 1
    return rows


class LocationRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_groups(self, fieldset: Fieldset) -> list[dict]:
        stmt = select(Location).where(Location.fieldset_id == fieldset.id)
        return group_location_rows(list(self.session.scalars(stmt).all()))

    def replace_groups(self, fieldset: Fieldset, groups: Iterable[Any], commit: bool = True) -> list[dict]:
        """Replace every location rule of the fieldset"""
        self.session.execute(delete(Location).where(Location.fieldset_id == fieldset.id))
        rows = build_location_rows(fieldset.id, groups)
        self.session.add_all(rows)

        if commit:
            self.session.commit()
        else:
            self.session.flush()
        self.session.expire(fieldset, ["locations"])

        logger.info_ctx("Replaced location rules", fieldset_id=fieldset.id, rules=len(rows))
        return group_location_rows(rows)


def get_location_repository(db: Session = Depends(get_db)) -> LocationRepository:
    """Dependency for location repository"""
    return LocationRepository(db)
