"""Quality records.

- quality_records, record_types, record_templates
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5e2a9b4c7d13"
down_revision: Union[str, None] = "3c1d8e0f5a72"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(64), primary_key=True)


def _ref(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.String(64), nullable=nullable)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "quality_records",
        _id(),
        sa.Column("record_number", sa.String(64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_uploaded_file", sa.Boolean(), nullable=False),
        _ref("creator_id", nullable=False),
        _ref("location_id"),
        _ref("department_id"),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("retention_years", sa.Integer(), nullable=False),
        sa.Column("approver_ids", sa.JSON(), nullable=False),
        sa.Column("reference_doc_ids", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("record_number", name="uq_quality_records_record_number"),
    )
    op.create_index("ix_quality_records_type", "quality_records", ["type"])
    op.create_index("ix_quality_records_status", "quality_records", ["status"])

    op.create_table(
        "record_types",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("prefix", sa.String(16), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("prefix", name="uq_record_types_prefix"),
    )
    op.create_table(
        "record_templates",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("record_templates")
    op.drop_table("record_types")
    op.drop_index("ix_quality_records_status", table_name="quality_records")
    op.drop_index("ix_quality_records_type", table_name="quality_records")
    op.drop_table("quality_records")
