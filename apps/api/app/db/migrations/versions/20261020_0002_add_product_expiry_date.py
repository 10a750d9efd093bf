"""add product expiry date

Revision ID: 20261020_0002
Revises: 20261019_0001
Create Date: 2026-10-20 09:00:00.000000
"""

import sqlalchemy as sa
from alembic import op

revision = "20261020_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("products", sa.Column("expiry_date", sa.Date(), nullable=True))
    op.create_index(op.f("ix_products_expiry_date"), "products", ["expiry_date"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_products_expiry_date"), table_name="products")
    op.drop_column("products", "expiry_date")
