"""Bookings schema with overlap exclusion constraints (SQL-only).

The application-level checks in staybook.domain.conflicts are the first
layer; the EXCLUDE USING GIST constraints guarantee no double booking even
when two writers race past those checks.

Revision ID: 001_bookings_schema
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "001_bookings_schema"
down_revision = None
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parents[1] / "sql" / "001_bookings.sql"


def upgrade() -> None:
    # Raw driver execution: the file holds several statements.
    op.get_bind().exec_driver_sql(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bookings")
    # btree_gist and pgcrypto are kept: other objects may depend on them.
