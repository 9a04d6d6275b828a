"""Initial tables: catalog, wallet cards, invoices, work orders, quick sales

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            )
        )
    return columns


def _money(name: str, default: bool = True) -> sa.Column:
    if default:
        return sa.Column(name, sa.Numeric(15, 2), nullable=False, server_default="0.00")
    return sa.Column(name, sa.Numeric(15, 2), nullable=False)


def _fee_line_columns() -> list[sa.Column]:
    return [
        sa.Column("service_id", sa.BigInteger(), nullable=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        _money("service_fee", default=False),
        _money("govt_fee", default=False),
        _money("price", default=False),
        sa.Column("beneficiary_name", sa.String(200), nullable=True),
        sa.Column("beneficiary_id_number", sa.String(50), nullable=True),
    ]


def upgrade() -> None:
    # Document sequences table
    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("prefix", sa.String(20), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("last_number", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
    )

    # Audit logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.BigInteger(), nullable=False),
        sa.Column("entity_identifier", sa.String(200), nullable=True),
        sa.Column("old_values", postgresql.JSONB(), nullable=True),
        sa.Column("new_values", postgresql.JSONB(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index(
        "ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False
    )
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)

    # Catalog
    op.create_table(
        "services",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        _money("service_fee"),
        _money("govt_fee"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_services_name", "services", ["name"], unique=False)
    op.create_index("ix_services_category", "services", ["category"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("mobile", sa.String(30), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("id_number", sa.String(50), nullable=True),
        sa.Column("nationality", sa.String(100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_mobile", "customers", ["mobile"], unique=True)

    # Wallet
    op.create_table(
        "wallet_cards",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("card_name", sa.String(100), nullable=False),
        sa.Column("card_type", sa.String(20), nullable=False, server_default="Other"),
        _money("balance"),
        sa.Column("status", sa.String(20), nullable=False, server_default="Active"),
        sa.Column("linked_to_govt_fees", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("balance >= 0", name="ck_wallet_cards_balance_non_negative"),
    )
    op.create_index("ix_wallet_cards_status", "wallet_cards", ["status"], unique=False)

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("card_id", sa.BigInteger(), nullable=False),
        sa.Column("transaction_type", sa.String(20), nullable=False),
        _money("amount", default=False),
        _money("balance_after", default=False),
        sa.Column("reference_invoice_id", sa.BigInteger(), nullable=True),
        sa.Column("reference_quick_sale_id", sa.BigInteger(), nullable=True),
        sa.Column("reversal_of_id", sa.BigInteger(), nullable=True),
        sa.Column("counterpart_card_id", sa.BigInteger(), nullable=True),
        sa.Column("memo", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["card_id"], ["wallet_cards.id"]),
        sa.ForeignKeyConstraint(["reversal_of_id"], ["wallet_transactions.id"]),
        sa.UniqueConstraint("reversal_of_id"),
    )
    op.create_index(
        "ix_wallet_transactions_card_id", "wallet_transactions", ["card_id"], unique=False
    )
    op.create_index(
        "ix_wallet_transactions_transaction_type",
        "wallet_transactions",
        ["transaction_type"],
        unique=False,
    )
    op.create_index(
        "ix_wallet_transactions_reference_invoice_id",
        "wallet_transactions",
        ["reference_invoice_id"],
        unique=False,
    )
    op.create_index(
        "ix_wallet_transactions_reference_quick_sale_id",
        "wallet_transactions",
        ["reference_quick_sale_id"],
        unique=False,
    )
    op.create_index(
        "ix_wallet_transactions_created_at", "wallet_transactions", ["created_at"], unique=False
    )

    # Invoices and quotations
    op.create_table(
        "invoices",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("invoice_number", sa.String(50), nullable=False),
        sa.Column("document_type", sa.String(20), nullable=False, server_default="invoice"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("customer_id", sa.BigInteger(), nullable=True),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_mobile", sa.String(30), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("beneficiary_name", sa.String(200), nullable=False),
        sa.Column("beneficiary_id_number", sa.String(50), nullable=True),
        sa.Column("beneficiary_count", sa.Integer(), nullable=False, server_default="1"),
        _money("service_fee"),
        _money("govt_fee"),
        _money("total"),
        _money("per_person_total"),
        sa.Column("payment_type", sa.String(20), nullable=False),
        _money("amount_received"),
        _money("change"),
        sa.Column("wallet_card_id", sa.BigInteger(), nullable=True),
        sa.Column("wallet_card_name", sa.String(100), nullable=True),
        sa.Column("work_order_id", sa.BigInteger(), nullable=True),
        sa.Column("quotation_number", sa.String(50), nullable=True),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["wallet_card_id"], ["wallet_cards.id"]),
        sa.UniqueConstraint("work_order_id"),
    )
    op.create_index("ix_invoices_invoice_number", "invoices", ["invoice_number"], unique=True)
    op.create_index("ix_invoices_document_type", "invoices", ["document_type"], unique=False)
    op.create_index("ix_invoices_status", "invoices", ["status"], unique=False)
    op.create_index("ix_invoices_customer_id", "invoices", ["customer_id"], unique=False)
    op.create_index("ix_invoices_wallet_card_id", "invoices", ["wallet_card_id"], unique=False)

    op.create_table(
        "invoice_lines",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("invoice_id", sa.BigInteger(), nullable=False),
        *_fee_line_columns(),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_invoice_lines_invoice_id", "invoice_lines", ["invoice_id"], unique=False)

    # Work orders
    op.create_table(
        "work_orders",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("work_order_number", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="Normal"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("customer_id", sa.BigInteger(), nullable=True),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_mobile", sa.String(30), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("beneficiary_name", sa.String(200), nullable=False),
        sa.Column("beneficiary_id_number", sa.String(50), nullable=True),
        sa.Column("beneficiary_count", sa.Integer(), nullable=False, server_default="1"),
        _money("service_fee"),
        _money("govt_fee"),
        _money("total"),
        _money("per_person_total"),
        sa.Column("wallet_card_id", sa.BigInteger(), nullable=True),
        sa.Column("invoice_id", sa.BigInteger(), nullable=True),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["wallet_card_id"], ["wallet_cards.id"]),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"]),
        sa.UniqueConstraint("invoice_id"),
    )
    op.create_index(
        "ix_work_orders_work_order_number", "work_orders", ["work_order_number"], unique=True
    )
    op.create_index("ix_work_orders_status", "work_orders", ["status"], unique=False)
    op.create_index("ix_work_orders_customer_id", "work_orders", ["customer_id"], unique=False)

    op.create_table(
        "work_order_lines",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("work_order_id", sa.BigInteger(), nullable=False),
        *_fee_line_columns(),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["work_order_id"], ["work_orders.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_work_order_lines_work_order_id", "work_order_lines", ["work_order_id"], unique=False
    )

    # Quick sales
    op.create_table(
        "quick_sales",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("sale_number", sa.String(50), nullable=False),
        _money("service_fee", default=False),
        _money("govt_fee", default=False),
        _money("total", default=False),
        sa.Column("payment_type", sa.String(20), nullable=False),
        _money("amount_received", default=False),
        _money("change"),
        sa.Column("wallet_card_id", sa.BigInteger(), nullable=True),
        sa.Column("wallet_card_name", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sale_date", sa.Date(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["wallet_card_id"], ["wallet_cards.id"]),
    )
    op.create_index("ix_quick_sales_sale_number", "quick_sales", ["sale_number"], unique=True)

    op.create_table(
        "quick_sale_lines",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("quick_sale_id", sa.BigInteger(), nullable=False),
        sa.Column("service_id", sa.BigInteger(), nullable=True),
        sa.Column("description", sa.String(255), nullable=False),
        _money("service_fee", default=False),
        _money("govt_fee", default=False),
        _money("price", default=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["quick_sale_id"], ["quick_sales.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_quick_sale_lines_quick_sale_id", "quick_sale_lines", ["quick_sale_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("quick_sale_lines")
    op.drop_table("quick_sales")
    op.drop_table("work_order_lines")
    op.drop_table("work_orders")
    op.drop_table("invoice_lines")
    op.drop_table("invoices")
    op.drop_table("wallet_transactions")
    op.drop_table("wallet_cards")
    op.drop_table("customers")
    op.drop_table("services")
    op.drop_table("audit_logs")
    op.drop_table("document_sequences")
