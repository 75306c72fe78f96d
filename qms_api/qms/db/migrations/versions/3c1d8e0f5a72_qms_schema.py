"""QMS schema.

- Organization: users, system_roles, departments, locations
- Safety: safety_incidents, near_misses, safety_observations
- Documents: documents, document_types, document_folders, doc_change_requests, doc_templates
- Training: training_records, learning_resources
- Master data: master_items, master_customers, master_suppliers
- Quality: qa_tickets, qa_inspections, ncr_records
- Complaints: customer_complaints
- Configuration: module_configs

Primary keys are strings so ids from restored backups are kept as-is. Cross-record
references are plain id columns without foreign keys; a restore replaces one table
at a time.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d8e0f5a72"
down_revision: Union[str, None] = None
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


TABLES = [
    "module_configs",
    "customer_complaints",
    "ncr_records",
    "qa_inspections",
    "qa_tickets",
    "master_suppliers",
    "master_customers",
    "master_items",
    "learning_resources",
    "training_records",
    "doc_templates",
    "doc_change_requests",
    "document_folders",
    "document_types",
    "documents",
    "safety_observations",
    "near_misses",
    "safety_incidents",
    "locations",
    "departments",
    "system_roles",
    "users",
]


def upgrade() -> None:
    # ORGANIZATION
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("username", sa.String(128), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("hashed_password", sa.Text(), nullable=True),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        _ref("system_role_id"),
        _ref("department_id"),
        _ref("location_id"),
        _ref("manager_id"),
        sa.Column("joined_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )
    op.create_index("ix_users_system_role_id", "users", ["system_role_id"])
    op.create_index("ix_users_manager_id", "users", ["manager_id"])

    op.create_table(
        "system_roles",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("module_access", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_system_roles_name"),
    )
    op.create_table(
        "departments",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_departments_name"),
    )
    op.create_table(
        "locations",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_locations_name"),
    )

    # SAFETY
    op.create_table(
        "safety_incidents",
        _id(),
        sa.Column("report_number", sa.String(32), nullable=False),
        _ref("injured_user_id"),
        _ref("reported_by_user_id", nullable=False),
        _ref("location_id", nullable=False),
        sa.Column("incident_date", sa.Date(), nullable=True),
        sa.Column("incident_time", sa.String(8), nullable=True),
        sa.Column("severity", sa.Integer(), nullable=False),
        sa.Column("treatment_type", sa.String(32), nullable=False),
        sa.Column("was_treated_in_er", sa.Boolean(), nullable=False),
        sa.Column("was_hospitalized_overnight", sa.Boolean(), nullable=False),
        sa.Column("is_privacy_case", sa.Boolean(), nullable=False),
        sa.Column("physician_name", sa.Text(), nullable=True),
        sa.Column("facility_name", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("report_number", name="uq_safety_incidents_report_number"),
    )
    op.create_index("ix_safety_incidents_location_id", "safety_incidents", ["location_id"])
    op.create_index("ix_safety_incidents_status", "safety_incidents", ["status"])

    op.create_table(
        "near_misses",
        _id(),
        sa.Column("report_number", sa.String(32), nullable=False),
        sa.Column("type", sa.String(8), nullable=False),
        _ref("reported_by_user_id", nullable=False),
        sa.Column("event_person_name", sa.Text(), nullable=True),
        sa.Column("event_date", sa.Date(), nullable=True),
        _ref("location_id", nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("report_number", name="uq_near_misses_report_number"),
    )
    op.create_index("ix_near_misses_location_id", "near_misses", ["location_id"])

    op.create_table(
        "safety_observations",
        _id(),
        sa.Column("report_number", sa.String(32), nullable=False),
        _ref("reported_by_user_id", nullable=False),
        _ref("location_id", nullable=False),
        sa.Column("specific_location", sa.Text(), nullable=True),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        _ref("assigned_action_user_id"),
        sa.Column("action_description", sa.Text(), nullable=True),
        sa.Column("action_due_date", sa.Date(), nullable=True),
        sa.Column("action_taken", sa.Text(), nullable=True),
        sa.Column("action_completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("report_number", name="uq_safety_observations_report_number"),
    )
    op.create_index("ix_safety_observations_location_id", "safety_observations", ["location_id"])

    # DOCUMENTS
    op.create_table(
        "documents",
        _id(),
        sa.Column("doc_number", sa.String(64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("version", sa.Float(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_uploaded_file", sa.Boolean(), nullable=False),
        _ref("folder_id"),
        sa.Column("is_redline", sa.Boolean(), nullable=False),
        _ref("author_id", nullable=False),
        sa.Column("approver_ids", sa.JSON(), nullable=False),
        sa.Column("approved_by_ids", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("training_required_roles", sa.JSON(), nullable=False),
        sa.Column("training_required_sites", sa.JSON(), nullable=False),
        sa.Column("reference_doc_ids", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_documents_doc_number", "documents", ["doc_number"])
    op.create_index("ix_documents_status", "documents", ["status"])

    op.create_table(
        "document_types",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("prefix", sa.String(16), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("prefix", name="uq_document_types_prefix"),
    )
    op.create_table(
        "document_folders",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        _ref("parent_id"),
        sa.Column("is_system", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "doc_change_requests",
        _id(),
        _ref("document_id", nullable=False),
        _ref("requested_by_user_id", nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        _ref("assigned_to_user_id"),
        sa.Column("status", sa.String(16), nullable=False),
        _ref("resolved_by_user_id"),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _ref("new_document_id"),
        *_timestamps(),
    )
    op.create_index("ix_doc_change_requests_document_id", "doc_change_requests", ["document_id"])

    op.create_table(
        "doc_templates",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("type", sa.String(8), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=True),
        *_timestamps(),
    )

    # TRAINING
    op.create_table(
        "training_records",
        _id(),
        _ref("user_id", nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        _ref("reference_id", nullable=False),
        sa.Column("version", sa.Float(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("assigned_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_training_records_user_id", "training_records", ["user_id"])
    op.create_index("ix_training_records_reference_id", "training_records", ["reference_id"])

    op.create_table(
        "learning_resources",
        _id(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("assigned_role_ids", sa.JSON(), nullable=False),
        sa.Column("is_self_assignable", sa.Boolean(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    # MASTER DATA
    op.create_table(
        "master_items",
        _id(),
        sa.Column("item_number", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("manufacturing_site", sa.Text(), nullable=False),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("item_number", name="uq_master_items_item_number"),
    )
    for table in ("master_customers", "master_suppliers"):
        op.create_table(
            table,
            _id(),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("email", sa.Text(), nullable=False),
            sa.Column("phone", sa.Text(), nullable=False),
            sa.Column("status", sa.String(16), nullable=False),
            *_timestamps(),
            sa.UniqueConstraint("name", name=f"uq_{table}_name"),
        )

    # QUALITY
    op.create_table(
        "qa_tickets",
        _id(),
        sa.Column("ticket_number", sa.String(64), nullable=False),
        sa.Column("item_number", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("process_type", sa.String(16), nullable=False),
        _ref("created_by_id", nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("is_new_item_entry", sa.Boolean(), nullable=False),
        sa.Column("applicable_form_ids", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("ticket_number", name="uq_qa_tickets_ticket_number"),
    )
    op.create_index("ix_qa_tickets_item_number", "qa_tickets", ["item_number"])
    op.create_index("ix_qa_tickets_status", "qa_tickets", ["status"])

    op.create_table(
        "qa_inspections",
        _id(),
        _ref("ticket_id", nullable=False),
        _ref("form_id", nullable=False),
        _ref("inspector_id", nullable=False),
        sa.Column("stage", sa.String(16), nullable=False),
        sa.Column("values", sa.JSON(), nullable=False),
        sa.Column("is_ncr_triggered", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_qa_inspections_ticket_id", "qa_inspections", ["ticket_id"])

    op.create_table(
        "ncr_records",
        _id(),
        _ref("ticket_id"),
        sa.Column("inspection_type", sa.Text(), nullable=False),
        _ref("inspection_id"),
        _ref("inspector_id", nullable=False),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("disposition_action", sa.String(16), nullable=True),
        sa.Column("justification", sa.Text(), nullable=True),
        sa.Column("defective_quantity", sa.Float(), nullable=True),
        sa.Column("price_per_thousand", sa.Float(), nullable=True),
        _ref("ncr_owner_id"),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("sub_category", sa.Text(), nullable=True),
        _ref("dispositioned_by"),
        sa.Column("dispositioned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("root_cause", sa.Text(), nullable=True),
        sa.Column("corrective_action", sa.Text(), nullable=True),
        _ref("assigned_to_user_id"),
        sa.Column("rca_due_date", sa.Date(), nullable=True),
        sa.Column("submitted_for_review_at", sa.DateTime(timezone=True), nullable=True),
        _ref("resolved_by_user_id"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_ncr_records_ticket_id", "ncr_records", ["ticket_id"])
    op.create_index("ix_ncr_records_inspection_id", "ncr_records", ["inspection_id"])
    op.create_index("ix_ncr_records_status", "ncr_records", ["status"])

    # COMPLAINTS
    op.create_table(
        "customer_complaints",
        _id(),
        _ref("ticket_id"),
        sa.Column("customer_id", sa.Text(), nullable=False),
        _ref("logged_by_user_id", nullable=False),
        sa.Column("stage", sa.String(16), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False),
        _ref("owner_id"),
        sa.Column("invoice_number", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("sub_category", sa.Text(), nullable=True),
        sa.Column("issue_description", sa.Text(), nullable=True),
        sa.Column("defective_quantity", sa.Float(), nullable=True),
        sa.Column("price_per_unit", sa.Float(), nullable=True),
        sa.Column("total_cost", sa.Float(), nullable=True),
        sa.Column("containment_action", sa.String(32), nullable=True),
        _ref("selected_return_address_id"),
        sa.Column("is_material_returned", sa.Boolean(), nullable=True),
        sa.Column("is_rework_possible", sa.Boolean(), nullable=True),
        sa.Column("rework_ticket_number", sa.Text(), nullable=True),
        sa.Column("is_material_discarded", sa.Boolean(), nullable=True),
        sa.Column("is_evidence_submitted", sa.Boolean(), nullable=True),
        sa.Column("root_cause", sa.Text(), nullable=True),
        sa.Column("corrective_action", sa.Text(), nullable=True),
        _ref("assigned_to_user_id"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_customer_complaints_ticket_id", "customer_complaints", ["ticket_id"])
    op.create_index("ix_customer_complaints_stage", "customer_complaints", ["stage"])

    # CONFIGURATION
    op.create_table(
        "module_configs",
        sa.Column("key", sa.String(32), primary_key=True),
        sa.Column("data", sa.JSON(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    for table in TABLES:
        op.drop_table(table)
