"""Baseline migration - every Aliice table

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-16

Creates the tenant, CRM, chat, Danote, Dischat, marketing and accounts
tables from the ORM metadata so SQLite dev databases and Postgres match.
"""
from typing import Sequence, Union

from alembic import op

from aliice.db.base import Base
import aliice.db.models  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    """Drop all tables."""
    Base.metadata.drop_all(bind=op.get_bind())
