"""Add Sesami booking columns to appointments

Revision ID: 002
Revises: 001
Create Date: 2025-02-03
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("appointments", sa.Column("external_booking_id", sa.String(255), nullable=True))
    op.add_column("appointments", sa.Column("external_customer_id", sa.String(255), nullable=True))
    op.add_column("appointments", sa.Column("service_id", sa.String(255), nullable=True))
    op.add_column("appointments", sa.Column("resource_id", sa.String(255), nullable=True))
    op.add_column("appointments", sa.Column("resource_name", sa.String(255), nullable=True))
    op.add_column("appointments", sa.Column("time_zone", sa.String(64), nullable=True))
    op.add_column("appointments", sa.Column("tags", sa.Text, nullable=True))

    # One row per Sesami booking; duplicate deliveries collide here
    op.create_index(
        "uq_appointments_external_booking_id",
        "appointments",
        ["external_booking_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("uq_appointments_external_booking_id", table_name="appointments")
    for column in (
        "tags",
        "time_zone",
        "resource_name",
        "resource_id",
        "service_id",
        "external_customer_id",
        "external_booking_id",
    ):
        op.drop_column("appointments", column)
