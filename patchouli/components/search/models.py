"""Search component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass, field

from patchouli.domain.entities import Post, SearchMode
from patchouli.domain.errors import OperationError


@dataclass(frozen=True)
class SearchInput:
    """Input for a search over published posts."""

    phrase: str
    mode: SearchMode = "keyword"
    limit: int | None = None


@dataclass(frozen=True)
class SearchOutput:
    """
    Output of a search.

    query is the grammar string actually run against the store; translated
    tells whether it came from the translator or from the raw phrase.
    """

    posts: list[Post] = field(default_factory=list)
    query: str | None = None
    translated: bool = False
    title_fallback: bool = False
    notices: list[OperationError] = field(default_factory=list)
    errors: list[OperationError] = field(default_factory=list)
    success: bool = True
