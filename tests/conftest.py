import os
import sqlite3
import tempfile
from pathlib import Path

# Set DB_PATH before any locbot module is imported so nothing touches a
# real database file during tests
os.environ.setdefault("DB_PATH", os.path.join(tempfile.mkdtemp(), "test_locbot.db"))

import pytest
from alembic.config import Config
from alembic import command

ROOT = Path(__file__).resolve().parent.parent

# Run alembic migrations on the test database once before tests
alembic_cfg = Config(str(ROOT / "alembic.ini"))
alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{os.environ['DB_PATH']}")
command.upgrade(alembic_cfg, "head")


@pytest.fixture
def store():
    """Identity store on the migrated test database, emptied after each test."""
    from locbot.store import IdentityStore

    s = IdentityStore(db_path=os.environ["DB_PATH"])
    yield s
    with sqlite3.connect(s.db_path) as conn:
        conn.execute("DELETE FROM users")
        conn.execute("DELETE FROM groups")
        conn.commit()
