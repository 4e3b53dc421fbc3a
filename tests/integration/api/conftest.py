import pytest
from fastapi.testclient import TestClient

from patchouli.api.auth_utils import create_access_token
from patchouli.api.deps import Settings, get_clue_generator, get_settings, get_translator
from patchouli.api.main import app
from patchouli.domain.errors import AssistUnavailableError

TEST_SECRET = "test-secret"


class FakeAssistant:
    """Scriptable translator and clue generator."""

    def __init__(self):
        self.translation = None
        self.clues = None

    def translate(self, phrase):
        if self.translation is None:
            raise AssistUnavailableError("translator offline")
        return self.translation

    def generate(self, body):
        if self.clues is None:
            raise AssistUnavailableError("generator offline")
        return self.clues


@pytest.fixture
def assistant():
    return FakeAssistant()


@pytest.fixture
def client(db_path, rules_path, assistant):
    def _settings():
        s = Settings()
        s.db_path = db_path
        s.rules_path = rules_path
        s.jwt_secret = TEST_SECRET
        s.llm_api_key = ""
        return s

    app.dependency_overrides[get_settings] = _settings
    app.dependency_overrides[get_translator] = lambda: assistant
    app.dependency_overrides[get_clue_generator] = lambda: assistant
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token({"sub": str(user.id)}, secret=TEST_SECRET)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def author_headers(author):
    return auth_headers(author)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)
