import os
import signal
import sys
from pathlib import Path

import pytest
from peewee import SqliteDatabase

# Force tests to use in-memory SQLite by default to avoid touching any real DB.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

# ensure project root is on sys.path when running tests
sys.path.append(str(Path(__file__).resolve().parent))

from database.db import db
from database.init import ALL_MODELS

_TEST_TIMEOUT = int(os.environ.get("PYTEST_TIMEOUT", "60"))


@pytest.fixture(autouse=True)
def watchdog():
    """Fail a test if it hangs longer than the timeout."""
    if not hasattr(signal, "SIGALRM"):
        yield
        return

    def handler(signum, frame):  # pragma: no cover - timeout handler
        pytest.fail("Test timeout exceeded", pytrace=False)

    signal.signal(signal.SIGALRM, handler)
    signal.alarm(_TEST_TIMEOUT)
    try:
        yield
    finally:
        signal.alarm(0)


@pytest.fixture()
def in_memory_db():
    # If db is not initialized yet, bind it to a fresh in-memory DB.
    # If it is already initialized (e.g., by an early init_from_env reading the
    # default DATABASE_URL we set above), reuse that handle.
    test_db = getattr(db, "obj", None)
    if test_db is None:
        test_db = SqliteDatabase(":memory:", pragmas={"foreign_keys": 1})
        db.initialize(test_db)
    else:
        # Safety guard: never run tests against a non in-memory DB.
        if not (
            isinstance(test_db, SqliteDatabase)
            and getattr(test_db, "database", None) == ":memory:"
        ):
            raise RuntimeError("Refusing to run tests on a non in-memory database")

    test_db.create_tables(ALL_MODELS)
    try:
        yield test_db
    finally:
        test_db.drop_tables(list(reversed(ALL_MODELS)))
        test_db.close()
