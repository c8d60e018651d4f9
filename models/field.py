"""Field model - one input definition inside a fieldset"""

from typing import Any, Optional, TYPE_CHECKING

from sqlalchemy import String, Text, Boolean, Integer, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.fieldset import Fieldset


class Field(Base):
    """
    Field stores its settings column-oriented (the wire shape):

    - placeholder / default_value / instructions / required as plain columns
    - conditional_logic and wrapper_config as separate JSON columns
    - field_config holding every type-specific setting

    `parent_id` nests a field under a container field (repeater, group).
    """
    __tablename__ = "openfields_fields"

    fieldset_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("openfields_fieldsets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("openfields_fields.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    label: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)

    placeholder: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    default_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    conditional_logic: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    wrapper_config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    field_config: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    menu_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    fieldset: Mapped["Fieldset"] = relationship("Fieldset", back_populates="fields")

    def __repr__(self):
        return f"<Field(name='{self.name}', type='{self.type}', parent={self.parent_id})>"
