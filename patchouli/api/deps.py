import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from patchouli.adapters.clock import SystemClock
from patchouli.adapters.llm import (
    ChatCompletionsClient,
    LLMClueGenerator,
    LLMQueryTranslator,
    OfflineAssistant,
)
from patchouli.adapters.sqlite.repos import SQLitePostStore, SQLiteUserStore
from patchouli.api.auth_utils import decode_access_token
from patchouli.components.clues import ClueGeneratorPort
from patchouli.components.lifecycle import LifecycleComponent
from patchouli.components.search import SearchComponent, TranslatorPort
from patchouli.domain.policy import PolicyEngine
from patchouli.rules.loader import load_rules
from patchouli.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.db_path = f"{os.environ.get('PATCHOULI_DATA_DIR', './data')}/patchouli.db"
        self.rules_path = Path(
            os.environ.get("PATCHOULI_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.jwt_secret = os.environ.get("PATCHOULI_JWT_SECRET", "dev-secret-unsafe")
        self.llm_base_url = os.environ.get("PATCHOULI_LLM_BASE_URL", "https://api.openai.com/v1")
        self.llm_api_key = os.environ.get("PATCHOULI_LLM_API_KEY", "")
        self.llm_model = os.environ.get("PATCHOULI_LLM_MODEL", "gpt-4o-mini")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return _load_rules_cached(settings.rules_path)


@lru_cache
def _load_rules_cached(path: Path) -> Rules:
    return load_rules(path)


# --- Stores ---
def get_post_store(
    settings: Settings = Depends(get_settings), rules: Rules = Depends(get_rules)
) -> SQLitePostStore:
    return SQLitePostStore(settings.db_path, timeout_seconds=rules.store.timeout_seconds)


def get_user_store(
    settings: Settings = Depends(get_settings), rules: Rules = Depends(get_rules)
) -> SQLiteUserStore:
    return SQLiteUserStore(settings.db_path, timeout_seconds=rules.store.timeout_seconds)


# --- Services ---
def get_policy(rules: Rules = Depends(get_rules)) -> PolicyEngine:
    return PolicyEngine(rules)


# Clock singleton
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


# LLM client singleton, created on first use when a key is configured
_llm_client_instance: ChatCompletionsClient | None = None


def _get_llm_client(settings: Settings, rules: Rules) -> ChatCompletionsClient | None:
    global _llm_client_instance
    if not settings.llm_api_key:
        return None
    if _llm_client_instance is None:
        _llm_client_instance = ChatCompletionsClient(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            timeout_seconds=rules.assist.timeout_seconds,
        )
    return _llm_client_instance


def get_translator(
    settings: Settings = Depends(get_settings), rules: Rules = Depends(get_rules)
) -> TranslatorPort:
    client = _get_llm_client(settings, rules)
    return LLMQueryTranslator(client) if client else OfflineAssistant()


def get_clue_generator(
    settings: Settings = Depends(get_settings), rules: Rules = Depends(get_rules)
) -> ClueGeneratorPort:
    client = _get_llm_client(settings, rules)
    return LLMClueGenerator(client) if client else OfflineAssistant()


# --- Components ---
def get_lifecycle(
    post_store: SQLitePostStore = Depends(get_post_store),
    user_store: SQLiteUserStore = Depends(get_user_store),
    policy: PolicyEngine = Depends(get_policy),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
    clue_generator: ClueGeneratorPort = Depends(get_clue_generator),
) -> LifecycleComponent:
    return LifecycleComponent(
        post_store=post_store,
        user_store=user_store,
        policy=policy,
        clock=clock,
        rules=rules,
        clue_generator=clue_generator,
    )


def get_search(
    post_store: SQLitePostStore = Depends(get_post_store),
    rules: Rules = Depends(get_rules),
    translator: TranslatorPort = Depends(get_translator),
) -> SearchComponent:
    return SearchComponent(
        store=post_store,
        search_rules=rules.search,
        assist_rules=rules.assist,
        translator=translator,
    )


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


async def get_caller_id(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    settings: Settings = Depends(get_settings),
) -> UUID | None:
    """
    Resolve the caller's user id from the bearer token or access_token cookie.

    Returns None for anonymous requests; a present but invalid token is a 401.
    Role and ban status are resolved by the components from the store.
    """
    cookie_token = request.cookies.get("access_token")
    if not token and cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ", 1)[1]

    if not token:
        return None

    payload = decode_access_token(token, secret=settings.jwt_secret)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None or not isinstance(user_id, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    try:
        return UUID(user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
        ) from e
