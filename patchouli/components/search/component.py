"""
Search component - keyword and AI-assisted search over published posts.

AI mode asks the translator for a structured query. Any translator
failure, timeout or unparseable answer falls back to the raw phrase as a
plain AND query, so search keeps working without the translator. When
the structured query matches nothing, a title substring match on the raw
phrase is tried in both modes.
"""

from __future__ import annotations

import logging

from patchouli.domain.errors import (
    AssistError,
    AssistTimeoutError,
    ErrorKind,
    OperationError,
    StoreError,
    store_failure,
)
from patchouli.domain.query import QuerySyntaxError, SearchQuery, parse_query, plain_query
from patchouli.rules.models import AssistRules, SearchRules

from .models import SearchInput, SearchOutput
from .ports import PostSearchPort, TranslatorPort

logger = logging.getLogger(__name__)


def _validation(code: str, message: str, field: str = "phrase") -> SearchOutput:
    return SearchOutput(
        errors=[
            OperationError(kind=ErrorKind.VALIDATION_ERROR, code=code, message=message, field=field)
        ],
        success=False,
    )


class SearchComponent:
    """Component translating phrases into store queries."""

    def __init__(
        self,
        store: PostSearchPort,
        search_rules: SearchRules,
        assist_rules: AssistRules,
        translator: TranslatorPort | None = None,
    ) -> None:
        self._store = store
        self._search_rules = search_rules
        self._assist_rules = assist_rules
        self._translator = translator

    def run(self, input_data: SearchInput) -> SearchOutput:
        phrase = (input_data.phrase or "").strip()
        if not phrase:
            return _validation("phrase_required", "Enter something to search for")
        if len(phrase) > self._assist_rules.phrase_max_chars:
            return _validation(
                "phrase_too_long",
                f"Search phrase must be at most {self._assist_rules.phrase_max_chars} characters",
            )
        if input_data.mode not in ("keyword", "ai"):
            return _validation("mode_invalid", f"Unknown search mode: {input_data.mode}")
        if input_data.limit is not None and input_data.limit < 1:
            return _validation("limit_invalid", "limit must be at least 1", field="limit")

        try:
            query = plain_query(phrase)
        except QuerySyntaxError:
            query = None

        notices: list[OperationError] = []
        translated = False
        if input_data.mode == "ai":
            ai_query, notice = self._translate(phrase)
            if ai_query is not None:
                query = ai_query
                translated = True
            elif notice is not None:
                notices.append(notice)

        # Callers may ask for fewer results, never more.
        limit = min(input_data.limit or self._search_rules.limit, self._search_rules.limit)
        try:
            posts = (
                self._store.search_posts(query, status="published", limit=limit)
                if query is not None
                else []
            )
            title_fallback = False
            if not posts and self._search_rules.title_fallback:
                logger.info("No full-text results for %r, falling back to title match", phrase)
                posts = self._store.find_by_title(phrase, status="published", limit=limit)
                title_fallback = True
        except StoreError as e:
            logger.error("Store failure during search: %s", e)
            return SearchOutput(errors=[store_failure(e, "search")], notices=notices, success=False)

        return SearchOutput(
            posts=posts,
            query=query.render() if query is not None else None,
            translated=translated,
            title_fallback=title_fallback,
            notices=notices,
            errors=[],
            success=True,
        )

    def _translate(self, phrase: str) -> tuple[SearchQuery | None, OperationError | None]:
        if self._translator is None:
            return None, self._notice("assist_disabled", "AI search is not configured")

        try:
            raw = self._translator.translate(phrase)
        except AssistTimeoutError as e:
            logger.warning("Query translation timed out: %s", e)
            return None, self._notice("assist_timeout", "AI search timed out")
        except AssistError as e:
            logger.warning("Query translation failed: %s", e)
            return None, self._notice("assist_unavailable", "AI search is unavailable")

        try:
            query = parse_query(raw or "")
        except QuerySyntaxError as e:
            logger.warning("Translator returned an unusable query %r: %s", raw, e)
            return None, self._notice("assist_invalid", "AI search returned an unusable query")

        logger.info("Translated %r to %r", phrase, query.render())
        return query, None

    @staticmethod
    def _notice(code: str, message: str) -> OperationError:
        return OperationError(
            kind=ErrorKind.EXTERNAL_UNAVAILABLE,
            code=code,
            message=f"{message}; showing keyword results instead",
            field="mode",
        )
