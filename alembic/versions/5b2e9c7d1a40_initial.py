"""initial

Revision ID: 5b2e9c7d1a40
Revises: 
Create Date: 2026-10-18 10:12:00.000000

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '5b2e9c7d1a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id      INTEGER NOT NULL PRIMARY KEY,
            uuid    TEXT    NOT NULL UNIQUE,
            picture BLOB
        )
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS groups (
            id     INTEGER NOT NULL PRIMARY KEY,
            secret TEXT    NOT NULL
        )
        """
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DROP TABLE IF EXISTS groups")
    op.execute("DROP TABLE IF EXISTS users")
