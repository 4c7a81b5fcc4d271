from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_directory_foundations"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
    ]


def upgrade():
    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("label", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("key_prefix", sa.String(length=16), nullable=False),
        sa.Column("key_hash", sa.Text(), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("rotated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_api_keys_key_prefix", "api_keys", ["key_prefix"])

    op.create_table(
        "form_fields",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("shortname", sa.String(length=120), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("association", sa.String(length=30), nullable=False),
        sa.Column("field_type", sa.String(length=60), nullable=False),
        sa.Column("validators", sa.Text(), nullable=False, server_default=""),
        sa.Column("weight", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("shortname", name="uq_form_field_shortname"),
    )

    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("url", sa.String(length=500), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False, server_default="image/jpeg"),
        *_audit_columns(),
    )

    op.create_table(
        "terms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("taxonomy", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("terms.id"), nullable=True),
    )
    op.create_index("ix_terms_taxonomy", "terms", ["taxonomy"])

    op.create_table(
        "term_meta",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("term_id", sa.Integer(), sa.ForeignKey("terms.id"), nullable=False),
        sa.Column("meta_key", sa.String(length=191), nullable=False),
        sa.Column("meta_value", sa.String(length=255), nullable=True),
        sa.UniqueConstraint("term_id", "meta_key", name="uq_term_meta_key"),
    )
    op.create_index("ix_term_meta_term_id", "term_meta", ["term_id"])

    op.create_table(
        "listings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("featured_image_id", sa.Integer(), sa.ForeignKey("media.id"), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_listings_title", "listings", ["title"])

    op.create_table(
        "listing_meta",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("listing_id", sa.Integer(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("meta_key", sa.String(length=191), nullable=False),
        sa.Column("meta_value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.UniqueConstraint("listing_id", "meta_key", name="uq_listing_meta_key"),
    )
    op.create_index("ix_listing_meta_listing_id", "listing_meta", ["listing_id"])

    op.create_table(
        "listing_terms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("listing_id", sa.Integer(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("term_id", sa.Integer(), sa.ForeignKey("terms.id"), nullable=False),
        sa.Column("taxonomy", sa.String(length=32), nullable=False),
        sa.UniqueConstraint("listing_id", "term_id", name="uq_listing_term"),
    )
    op.create_index("ix_listing_terms_listing_id", "listing_terms", ["listing_id"])

    op.create_table(
        "options",
        sa.Column("key", sa.String(length=191), primary_key=True),
        sa.Column("value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade():
    op.drop_table("options")
    op.drop_index("ix_listing_terms_listing_id", table_name="listing_terms")
    op.drop_table("listing_terms")
    op.drop_index("ix_listing_meta_listing_id", table_name="listing_meta")
    op.drop_table("listing_meta")
    op.drop_index("ix_listings_title", table_name="listings")
    op.drop_table("listings")
    op.drop_index("ix_term_meta_term_id", table_name="term_meta")
    op.drop_table("term_meta")
    op.drop_index("ix_terms_taxonomy", table_name="terms")
    op.drop_table("terms")
    op.drop_table("media")
    op.drop_table("form_fields")
    op.drop_index("ix_api_keys_key_prefix", table_name="api_keys")
    op.drop_table("api_keys")
