"""Search component port definitions - protocols for dependencies."""

from typing import Protocol

from patchouli.domain.entities import Post, PostStatus
from patchouli.domain.query import SearchQuery


class PostSearchPort(Protocol):
    """Full-text search over stored posts."""

    def search_posts(
        self, query: SearchQuery, *, status: PostStatus, limit: int = 50
    ) -> list[Post]:
        """Posts in status whose title, body, tags or clues satisfy the query."""
        ...

    def find_by_title(self, fragment: str, *, status: PostStatus, limit: int = 50) -> list[Post]:
        """Posts in status whose title contains fragment, case-insensitively."""
        ...


class TranslatorPort(Protocol):
    """External natural-language to search-grammar translator."""

    def translate(self, phrase: str) -> str:
        """
        Return a single-line query in the search grammar.

        Raises AssistUnavailableError or AssistTimeoutError on failure.
        """
        ...
