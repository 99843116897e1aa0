import pytest

from latin_tutor.db import init_db
from latin_tutor.identity import LocalIdentity
from latin_tutor.seed import seed_all
from latin_tutor.store import ReviewStore


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def seeded_db(tmp_db):
    """A temporary database with the sample lessons loaded."""
    init_db(tmp_db)
    seed_all(tmp_db)
    return tmp_db


@pytest.fixture
def identity():
    ident = LocalIdentity()
    ident.sign_in("owner-1")
    return ident


@pytest.fixture
def store(seeded_db, identity):
    return ReviewStore(seeded_db, identity, retry_delay=0, sleep=lambda seconds: None)
