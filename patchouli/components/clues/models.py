"""Clue component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass, field

from patchouli.domain.errors import OperationError


@dataclass(frozen=True)
class GenerateCluesInput:
    """Input for clue generation."""

    body: str


@dataclass(frozen=True)
class ClueOutput:
    """Output of clue generation. clues is None whenever success is False."""

    clues: str | None
    errors: list[OperationError] = field(default_factory=list)
    success: bool = True
