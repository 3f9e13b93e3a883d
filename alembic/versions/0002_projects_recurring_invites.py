"""Projects, recurring invoice templates and team invite codes.

Revision ID: 0002_projects_recurring
Revises: 0001_initial
Create Date: 2026-10-18 12:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_projects_recurring"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

MONEY = sa.Numeric(18, 2)
PERCENT = sa.Numeric(7, 3)


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("budget_amount", MONEY, nullable=True),
        sa.Column("color", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "status IN ('active', 'completed', 'on_hold', 'cancelled')",
            name=op.f("ck_projects_status_allowed"),
        ),
        sa.ForeignKeyConstraint(
            ["client_id"], ["clients.id"], name=op.f("fk_projects_client_id_clients"), ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_projects")),
    )
    op.create_index(op.f("ix_projects_user_id"), "projects", ["user_id"], unique=False)
    op.create_index("ix_projects_user_status", "projects", ["user_id", "status"], unique=False)

    for table in ("incomes", "expenses"):
        with op.batch_alter_table(table) as batch:
            batch.add_column(sa.Column("project_id", sa.Integer(), nullable=True))
            batch.create_foreign_key(
                op.f(f"fk_{table}_project_id_projects"), "projects", ["project_id"], ["id"], ondelete="SET NULL"
            )

    op.create_table(
        "recurring_invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("frequency", sa.String(length=16), nullable=False),
        sa.Column("next_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("last_generated", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("payment_terms_days", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("tax_rate", PERCENT, nullable=False),
        sa.Column("notes", sa.String(length=1024), nullable=True),
        sa.Column("income_category_id", sa.Integer(), nullable=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "frequency IN ('weekly', 'biweekly', 'monthly', 'quarterly', 'yearly')",
            name=op.f("ck_recurring_invoices_frequency_allowed"),
        ),
        sa.ForeignKeyConstraint(
            ["client_id"], ["clients.id"], name=op.f("fk_recurring_invoices_client_id_clients"), ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["income_category_id"],
            ["categories.id"],
            name=op.f("fk_recurring_invoices_income_category_id_categories"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_recurring_invoices")),
    )
    op.create_index(op.f("ix_recurring_invoices_user_id"), "recurring_invoices", ["user_id"], unique=False)
    op.create_index(
        "ix_recurring_invoices_user_next", "recurring_invoices", ["user_id", "next_date"], unique=False
    )

    with op.batch_alter_table("team_members") as batch:
        batch.add_column(sa.Column("invite_code", sa.String(length=64), nullable=True))
        batch.add_column(sa.Column("invite_expires_at", sa.DateTime(timezone=True), nullable=True))
        batch.create_unique_constraint(op.f("uq_team_members_invite_code"), ["invite_code"])


def downgrade() -> None:
    with op.batch_alter_table("team_members") as batch:
        batch.drop_constraint(op.f("uq_team_members_invite_code"), type_="unique")
        batch.drop_column("invite_expires_at")
        batch.drop_column("invite_code")

    op.drop_table("recurring_invoices")

    for table in ("expenses", "incomes"):
        with op.batch_alter_table(table) as batch:
            batch.drop_constraint(op.f(f"fk_{table}_project_id_projects"), type_="foreignkey")
            batch.drop_column("project_id")

    op.drop_table("projects")
