from typing import Any

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import AuditMixin, Base, JSONType


class Listing(AuditMixin, Base):
    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # "publish" | "pending" | "draft" | ...
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")

    featured_image_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("media.id"), nullable=True)


class ListingMeta(Base):
    __tablename__ = "listing_meta"
    __table_args__ = (UniqueConstraint("listing_id", "meta_key", name="uq_listing_meta_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    listing_id: Mapped[int] = mapped_column(Integer, ForeignKey("listings.id"), nullable=False, index=True)

    # e.g. "_wpbdp[fields][7]"
    meta_key: Mapped[str] = mapped_column(String(191), nullable=False)
    meta_value: Mapped[Any] = mapped_column(JSONType, nullable=True)


class ListingTerm(Base):
    __tablename__ = "listing_terms"
    __table_args__ = (UniqueConstraint("listing_id", "term_id", name="uq_listing_term"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    listing_id: Mapped[int] = mapped_column(Integer, ForeignKey("listings.id"), nullable=False, index=True)
    term_id: Mapped[int] = mapped_column(Integer, ForeignKey("terms.id"), nullable=False)

    # denormalized so a whole taxonomy can be replaced without a join
    taxonomy: Mapped[str] = mapped_column(String(32), nullable=False)
