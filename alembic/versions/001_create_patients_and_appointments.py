"""Create patients and appointments tables

Revision ID: 001
Revises: None
Create Date: 2025-01-06
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "patients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("breed", sa.String(50), nullable=False),
        sa.Column("birth_date", sa.DateTime, nullable=False),
        sa.Column("gender", sa.String(10), nullable=False),
        sa.Column("weight", sa.Float, nullable=True),
        sa.Column("color", sa.String(30), nullable=True),
        sa.Column("microchip_id", sa.String(20), nullable=True),
        sa.Column("owner_name", sa.String(100), nullable=False),
        sa.Column("owner_phone", sa.String(25), nullable=False),
        sa.Column("owner_email", sa.String(255), nullable=True),
        sa.Column("medical_notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("patient_id", sa.String(36), nullable=True),
        sa.Column("customer_name", sa.String(100), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone", sa.String(25), nullable=True),
        sa.Column("service_name", sa.String(255), nullable=False),
        sa.Column("staff_member", sa.String(100), nullable=True),
        sa.Column("start_time", sa.DateTime, nullable=False),
        sa.Column("end_time", sa.DateTime, nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="confirmed"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("idx_appointments_time_range", "appointments", ["start_time", "end_time"])


def downgrade() -> None:
    op.drop_index("idx_appointments_time_range", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("patients")
