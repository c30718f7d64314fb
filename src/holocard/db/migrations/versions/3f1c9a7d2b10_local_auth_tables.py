"""Local auth tables: users, sessions, images

Learn: Mirrors the tables the app has always created on first run, with
the same camelCase column names, so existing database.db files can be
stamped at this revision without changes.

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 09:12:40.118201
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.Text(), nullable=False, unique=True),
        sa.Column("password", sa.Text(), nullable=False),
    )
    op.create_table(
        "sessions",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("userId", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("expiresAt", sa.BigInteger(), nullable=False),
    )
    op.create_table(
        "images",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("userId", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("imagePath", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("images")
    op.drop_table("sessions")
    op.drop_table("users")
