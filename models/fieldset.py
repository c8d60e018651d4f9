"""Fieldset model - a named, orderable collection of fields"""

from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, Text, Boolean, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base
from models.location import group_location_rows

if TYPE_CHECKING:
    from models.field import Field
    from models.location import Location


class Fieldset(Base):
    """
    Fieldset groups fields that are shown together on matching admin screens.

    - `field_key` is a unique slug ([a-z0-9_]+) across all fieldsets
    - `settings` is an opaque JSON bag (location groups live in the locations table)
    - Deleting a fieldset cascades to its fields and location rules
    """
    __tablename__ = "openfields_fieldsets"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    field_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default="")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    settings: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    menu_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    fields: Mapped[list["Field"]] = relationship(
        "Field",
        back_populates="fieldset",
        cascade="all, delete-orphan",
        order_by="Field.menu_order",
    )

    locations: Mapped[list["Location"]] = relationship(
        "Location",
        back_populates="fieldset",
        cascade="all, delete-orphan",
        order_by="Location.group_id",
    )

    def __repr__(self):
        return f"<Fieldset(key='{self.field_key}', title='{self.title}', active={self.is_active})>"

    @property
    def location_groups(self) -> list[dict]:
        return group_location_rows(self.locations)
