from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class Term(Base):
    __tablename__ = "terms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # "wpbdp_region" | "wpbdp_category" | "wpbdp_tag"
    taxonomy: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    parent_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("terms.id"), nullable=True)


class TermMeta(Base):
    __tablename__ = "term_meta"
    __table_args__ = (UniqueConstraint("term_id", "meta_key", name="uq_term_meta_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    term_id: Mapped[int] = mapped_column(Integer, ForeignKey("terms.id"), nullable=False, index=True)
    meta_key: Mapped[str] = mapped_column(String(191), nullable=False)
    meta_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
