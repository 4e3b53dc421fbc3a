"""
Full-text search grammar.

A query is a single line of terms. Terms separated by whitespace are
AND'ed; the literal token ``OR`` between two terms makes them
alternatives. ``OR`` binds tighter than the implicit AND, so
``backup OR save world`` means ``(backup | save) & world``.

A parsed query is a conjunction of clauses, each clause a disjunction of
lower-cased terms.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

OR_TOKEN = "OR"
AND_TOKEN = "AND"

# Characters with no meaning in the grammar; stripped from terms.
# Identifier punctuation (@minecraft/server, minecraft:stone, player's) stays.
_PUNCT_RE = re.compile(r"[^\w\-.#/:@']+", re.UNICODE)
_EDGE_CHARS = ".-/:'"
_QUOTES = "\"'`“”‘’「」"


class QuerySyntaxError(ValueError):
    """Raised when a string does not conform to the search grammar."""


@dataclass(frozen=True)
class SearchQuery:
    clauses: tuple[tuple[str, ...], ...]

    @property
    def terms(self) -> list[str]:
        return [term for clause in self.clauses for term in clause]

    def render(self) -> str:
        """Serialize back into the grammar."""
        return " ".join(f" {OR_TOKEN} ".join(clause) for clause in self.clauses)

    def __str__(self) -> str:
        return self.render()


def _clean_term(token: str) -> str:
    return _PUNCT_RE.sub("", token).strip(_EDGE_CHARS).lower()


def parse_query(text: str) -> SearchQuery:
    """
    Parse a grammar string into a SearchQuery.

    Raises QuerySyntaxError on empty input, multiple lines, or a dangling
    or doubled OR.
    """
    if text is None:
        raise QuerySyntaxError("Query is empty")

    stripped = text.strip().strip(_QUOTES).strip()
    if not stripped:
        raise QuerySyntaxError("Query is empty")
    if "\n" in stripped or "\r" in stripped:
        raise QuerySyntaxError("Query must be a single line")

    clauses: list[list[str]] = []
    expecting_alternative = False
    previous_was_or = False

    for token in stripped.split():
        if token == AND_TOKEN:
            # Explicit AND is the same as whitespace
            if previous_was_or:
                raise QuerySyntaxError("OR must be followed by a term")
            continue

        if token == OR_TOKEN:
            if not clauses or previous_was_or:
                raise QuerySyntaxError("OR must sit between two terms")
            previous_was_or = True
            expecting_alternative = True
            continue

        term = _clean_term(token)
        previous_was_or = False
        if not term:
            if expecting_alternative:
                raise QuerySyntaxError("OR must be followed by a term")
            continue

        if expecting_alternative:
            clauses[-1].append(term)
            expecting_alternative = False
        else:
            clauses.append([term])

    if expecting_alternative:
        raise QuerySyntaxError("OR must be followed by a term")
    if not clauses:
        raise QuerySyntaxError("Query has no searchable terms")

    return SearchQuery(clauses=tuple(tuple(dict.fromkeys(c)) for c in clauses))


def plain_query(phrase: str) -> SearchQuery:
    """
    Treat a raw phrase as a plain multi-term AND query.

    Every whitespace-separated word becomes its own required term; words
    that look like operators are searched for literally.
    """
    terms = [_clean_term(token) for token in phrase.split()]
    terms = [t for t in terms if t]
    if not terms:
        raise QuerySyntaxError("Query has no searchable terms")
    return SearchQuery(clauses=tuple((t,) for t in dict.fromkeys(terms)))
