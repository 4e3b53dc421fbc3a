from pathlib import Path

import pytest

from patchouli.adapters.sqlite.migrator import SQLiteMigrator
from patchouli.adapters.sqlite.repos import SQLitePostStore, SQLiteUserStore
from patchouli.domain.entities import User
from patchouli.rules.loader import load_rules
from patchouli.rules.models import Rules

PROJECT_ROOT = Path(__file__).parent.parent
RULES_PATH = PROJECT_ROOT / "rules.yaml"


@pytest.fixture
def rules_path() -> Path:
    return RULES_PATH


@pytest.fixture
def rules() -> Rules:
    """The real rules.yaml shipped with the project."""
    return load_rules(RULES_PATH)


@pytest.fixture
def db_path(tmp_path) -> str:
    path = str(tmp_path / "data" / "patchouli.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def post_store(db_path) -> SQLitePostStore:
    return SQLitePostStore(db_path)


@pytest.fixture
def user_store(db_path) -> SQLiteUserStore:
    return SQLiteUserStore(db_path)


@pytest.fixture
def author(user_store) -> User:
    return user_store.save_user(User(name="Alex"))


@pytest.fixture
def admin(user_store) -> User:
    user = user_store.save_user(User(name="Moderator"))
    promoted = user_store.set_role(user.id, "admin")
    assert promoted is not None
    return promoted
