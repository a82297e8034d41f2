"""initial

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tm_event_id", sa.String(64), nullable=False),
        sa.Column("event_name", sa.String(500), nullable=False),
        sa.Column("artist", sa.String(255), nullable=True),
        sa.Column("venue", sa.String(255), nullable=True),
        sa.Column("event_date", sa.DateTime(), nullable=True),
        sa.Column("event_date_raw", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_events_tm_event_id", "events", ["tm_event_id"], unique=True)

    op.create_table(
        "cards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("card_number", sa.String(32), nullable=False),
        sa.Column("card_type", sa.String(50), nullable=True),
        sa.Column("account_id", sa.Integer(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cards_card_number", "cards", ["card_number"])
    op.create_index("ix_cards_account_id", "cards", ["account_id"])

    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=True),
        sa.Column("card_id", sa.Integer(), nullable=True),
        sa.Column("card_last4", sa.String(4), nullable=True),
        sa.Column("tm_order_number", sa.String(100), nullable=True),
        sa.Column("dashboard_po_number", sa.String(20), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="SUCCESS"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("price_each", sa.Float(), nullable=True),
        sa.Column("total_price", sa.Float(), nullable=True),
        sa.Column("section", sa.String(100), nullable=True),
        sa.Column("row", sa.String(50), nullable=True),
        sa.Column("seats", sa.String(100), nullable=True),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.ForeignKeyConstraint(["card_id"], ["cards.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dashboard_po_number"),
    )
    op.create_index("ix_purchases_account_id", "purchases", ["account_id"])
    op.create_index("ix_purchases_event_id", "purchases", ["event_id"])
    op.create_index("ix_purchases_card_id", "purchases", ["card_id"])
    op.create_index("ix_purchases_tm_order_number", "purchases", ["tm_order_number"], unique=True)

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )

    op.create_table(
        "job_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("task_id", sa.String(255), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("job_runs")
    op.drop_table("app_settings")
    op.drop_index("ix_purchases_tm_order_number", table_name="purchases")
    op.drop_index("ix_purchases_card_id", table_name="purchases")
    op.drop_index("ix_purchases_event_id", table_name="purchases")
    op.drop_index("ix_purchases_account_id", table_name="purchases")
    op.drop_table("purchases")
    op.drop_index("ix_cards_account_id", table_name="cards")
    op.drop_index("ix_cards_card_number", table_name="cards")
    op.drop_table("cards")
    op.drop_index("ix_events_tm_event_id", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_table("accounts")
