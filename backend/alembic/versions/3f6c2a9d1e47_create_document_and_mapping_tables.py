"""Create document and product mapping tables

Revision ID: 3f6c2a9d1e47
Revises:
Create Date: 2025-10-02 09:14:31.204117

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '3f6c2a9d1e47'
down_revision = None
branch_labels = None
depends_on = None

document_type = sa.Enum(
    "INVOICE", "PURCHASE_ORDER", "SALES_CONTRACT", "SPREADSHEET", "GENERIC",
    name="documenttype",
)
document_status = sa.Enum("SENT", "DELIVERED", "PROCESSED", name="documentstatus")


def upgrade() -> None:
    # 1) Companies
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_companies_id", "companies", ["id"])
    op.create_index("ix_companies_name", "companies", ["name"])

    # 2) Documents
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sender_company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("recipient_company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("document_type", document_type, nullable=True),
        sa.Column("original_filename", sa.String(), nullable=False),
        sa.Column("file_path", sa.String(), nullable=False),
        sa.Column("mime_type", sa.String(), nullable=True),
        sa.Column("status", document_status, nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_documents_id", "documents", ["id"])
    op.create_index("ix_documents_sender_company_id", "documents", ["sender_company_id"])
    op.create_index("ix_documents_recipient_company_id", "documents", ["recipient_company_id"])

    # 3) Extracted fields, one row per (document, field name)
    op.create_table(
        "extracted_fields",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_id", sa.Integer(), sa.ForeignKey("documents.id"), nullable=False),
        sa.Column("field_name", sa.String(), nullable=False),
        sa.Column("field_value", sa.Text(), nullable=True),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("document_id", "field_name", name="uq_extracted_fields_document_field"),
    )
    op.create_index("ix_extracted_fields_id", "extracted_fields", ["id"])
    op.create_index("ix_extracted_fields_document_id", "extracted_fields", ["document_id"])
    op.create_index("ix_extracted_fields_field_name", "extracted_fields", ["field_name"])

    # 4) Review corrections
    op.create_table(
        "field_corrections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_id", sa.Integer(), sa.ForeignKey("documents.id"), nullable=False),
        sa.Column("field_name", sa.String(), nullable=False),
        sa.Column("original_value", sa.Text(), nullable=True),
        sa.Column("mapped_value", sa.Text(), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("corrected_by", sa.Integer(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_field_corrections_id", "field_corrections", ["id"])
    op.create_index("ix_field_corrections_document_id", "field_corrections", ["document_id"])
    op.create_index("ix_field_corrections_field_name", "field_corrections", ["field_name"])

    # 5) Product mappings, unique per natural key so upserts can target it
    op.create_table(
        "product_mappings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("from_company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("to_company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("from_product_code", sa.String(), nullable=False),
        sa.Column("to_product_code", sa.String(), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_manual", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("last_used", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "from_company_id", "to_company_id", "from_product_code",
            name="uq_product_mappings_pair_code",
        ),
        sa.CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_product_mappings_confidence_range",
        ),
    )
    op.create_index("ix_product_mappings_id", "product_mappings", ["id"])
    op.create_index("ix_product_mappings_from_company_id", "product_mappings", ["from_company_id"])
    op.create_index("ix_product_mappings_to_company_id", "product_mappings", ["to_company_id"])

    # 6) Trained pattern models, one per company pair
    op.create_table(
        "mapping_models",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("from_company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("to_company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("model_type", sa.String(), nullable=False, server_default="pattern_based"),
        sa.Column("patterns", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("training_samples", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("from_company_id", "to_company_id", name="uq_mapping_models_pair"),
    )
    op.create_index("ix_mapping_models_id", "mapping_models", ["id"])
    op.create_index("ix_mapping_models_from_company_id", "mapping_models", ["from_company_id"])
    op.create_index("ix_mapping_models_to_company_id", "mapping_models", ["to_company_id"])


def downgrade() -> None:
    op.drop_table("mapping_models")
    op.drop_table("product_mappings")
    op.drop_table("field_corrections")
    op.drop_table("extracted_fields")
    op.drop_table("documents")
    op.drop_table("companies")
    document_status.drop(op.get_bind(), checkfirst=True)
    document_type.drop(op.get_bind(), checkfirst=True)
