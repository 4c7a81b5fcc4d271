from sqlalchemy import Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class FormField(Base):
    """
    Field definitions owned by the directory's form builder.
    This service only reads them; rows change through external schema management.
    """
    __tablename__ = "form_fields"
    __table_args__ = (UniqueConstraint("shortname", name="uq_form_field_shortname"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shortname: Mapped[str] = mapped_column(String(120), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # "meta" | "region" | "title" | "category" | "tags" | ...
    association: Mapped[str] = mapped_column(String(30), nullable=False)
    # "textfield" | "url" | "textarea" | ...
    field_type: Mapped[str] = mapped_column(String(60), nullable=False)
    validators: Mapped[str] = mapped_column(Text, nullable=False, default="")

    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
