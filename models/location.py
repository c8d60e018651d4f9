"""Location model - one location rule row of a fieldset"""

from typing import TYPE_CHECKING

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.fieldset import Fieldset


class Location(Base):
    """
    Rules sharing a group_id are AND'ed, groups are OR'ed.
    """
    __tablename__ = "openfields_locations"

    fieldset_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("openfields_fieldsets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    param: Mapped[str] = mapped_column(String(100), nullable=False)
    operator: Mapped[str] = mapped_column(String(20), nullable=False, default="==")
    value: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    group_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    fieldset: Mapped["Fieldset"] = relationship("Fieldset", back_populates="locations")

    def __repr__(self):
        return f"<Location(param='{self.param}', operator='{self.operator}', value='{self.value}')>"


def group_location_rows(rows: list["Location"]) -> list[dict]:
    """Convert stored rule rows into ordered location groups"""
    groups: dict[int, list[dict]] = {}
    for row in sorted(rows, key=lambda r: (r.group_id or 0, r.id or 0)):
        groups.setdefault(row.group_id or 0, []).append({
            "type": row.param,
            "operator": row.operator,
            "value": row.value,
        })

    return [
        {"id": f"group_{index}", "rules": rules}
        for index, rules in enumerate(groups.values())
    ]
