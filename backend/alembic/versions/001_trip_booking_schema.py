"""Trip booking schema: trips, bookings, participants, agreements, payment history,
plus the create_booking function used by the booking writer.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


CREATE_BOOKING_FUNCTION = """
CREATE OR REPLACE FUNCTION create_booking(
    p_trip_id integer,
    p_booking_ref text,
    p_contact_first_name text,
    p_contact_last_name text,
    p_contact_email text,
    p_contact_phone text,
    p_address json,
    p_applicant_type text,
    p_company_name text,
    p_company_nip text,
    p_company_address json,
    p_consents json,
    p_status text,
    p_payment_status text,
    p_source text
)
RETURNS TABLE (id integer, booking_ref text)
LANGUAGE plpgsql
SECURITY DEFINER
AS $$
BEGIN
    RETURN QUERY
    INSERT INTO bookings AS b (
        trip_id, booking_ref,
        contact_first_name, contact_last_name, contact_email, contact_phone, address,
        applicant_type, company_name, company_nip, company_address,
        consents, status, payment_status, source
    )
    VALUES (
        p_trip_id, p_booking_ref,
        p_contact_first_name, p_contact_last_name, p_contact_email, p_contact_phone, p_address,
        p_applicant_type, p_company_name, p_company_nip, p_company_address,
        COALESCE(p_consents, '{}'::json), p_status, p_payment_status, p_source
    )
    RETURNING b.id, b.booking_ref::text;
END;
$$;
"""


def upgrade() -> None:
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("public_slug", sa.String(255), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("seats_total", sa.Integer(), nullable=False),
        sa.Column("seats_reserved", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("slug", name="uq_trips_slug"),
        sa.UniqueConstraint("public_slug", name="uq_trips_public_slug"),
        sa.CheckConstraint("seats_reserved >= 0", name="check_seats_reserved_non_negative"),
        sa.CheckConstraint("seats_reserved <= seats_total", name="check_seats_reserved_lte_total"),
        sa.CheckConstraint("price_cents >= 0", name="check_price_non_negative"),
    )
    op.create_index("ix_trips_id", "trips", ["id"])
    # Booking intake looks trips up by slug among active trips only
    op.create_index("ix_trips_active_slug", "trips", ["is_active", "slug"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("booking_ref", sa.String(64), nullable=False),
        # Generated by the database so the create_booking function gets one too
        sa.Column(
            "access_token",
            sa.String(128),
            nullable=True,
            server_default=sa.text("replace(gen_random_uuid()::text, '-', '')"),
        ),
        sa.Column("contact_first_name", sa.String(100), nullable=True),
        sa.Column("contact_last_name", sa.String(100), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("contact_phone", sa.String(50), nullable=False),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("applicant_type", sa.String(20), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("company_nip", sa.String(20), nullable=True),
        sa.Column("company_address", sa.JSON(), nullable=True),
        sa.Column("consents", sa.JSON(), nullable=False, server_default=sa.text("'{}'::json")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'unpaid'")),
        sa.Column("source", sa.String(20), nullable=False, server_default=sa.text("'public_page'")),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name="check_booking_status"),
        sa.CheckConstraint(
            "payment_status IN ('unpaid', 'partial', 'paid', 'overpaid')",
            name="check_booking_payment_status",
        ),
        sa.CheckConstraint("source IN ('public_page', 'admin_panel')", name="check_booking_source"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_trip_id", "bookings", ["trip_id"])
    op.create_index("ix_bookings_booking_ref", "bookings", ["booking_ref"], unique=True)
    op.create_index("ix_bookings_access_token", "bookings", ["access_token"], unique=True)

    op.create_table(
        "participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("national_id", sa.String(11), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("document_type", sa.String(20), nullable=True),
        sa.Column("document_number", sa.String(50), nullable=True),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_participants_id", "participants", ["id"])
    op.create_index("ix_participants_booking_id", "participants", ["booking_id"])

    op.create_table(
        "agreements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'generated'")),
        sa.Column("pdf_url", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('generated', 'sent', 'signed')", name="check_agreement_status"),
    )
    op.create_index("ix_agreements_id", "agreements", ["id"])
    op.create_index("ix_agreements_booking_id", "agreements", ["booking_id"])

    op.create_table(
        "payment_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=False, server_default=sa.text("'paynow'")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_payment_history_id", "payment_history", ["id"])
    op.create_index("ix_payment_history_booking_id", "payment_history", ["booking_id"])

    op.execute(CREATE_BOOKING_FUNCTION)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS create_booking(integer, text, text, text, text, text, json, text, text, text, json, json, text, text, text)")
    op.drop_table("payment_history")
    op.drop_table("agreements")
    op.drop_table("participants")
    op.drop_table("bookings")
    op.drop_table("trips")
