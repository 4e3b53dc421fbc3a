"""Clue component port definitions - protocols for dependencies."""

from typing import Protocol


class ClueGeneratorPort(Protocol):
    """External collaborator producing advisory search keywords."""

    def generate(self, body: str) -> str:
        """
        Return keywords, synonyms and use-cases for a post body.

        Raises AssistUnavailableError or AssistTimeoutError on failure.
        """
        ...
