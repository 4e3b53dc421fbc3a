"""Clue component - advisory search clue generation for post bodies."""

from patchouli.components.clues.component import run_generate
from patchouli.components.clues.models import ClueOutput, GenerateCluesInput
from patchouli.components.clues.ports import ClueGeneratorPort

__all__ = [
    # Entry point
    "run_generate",
    # Models
    "GenerateCluesInput",
    "ClueOutput",
    # Ports
    "ClueGeneratorPort",
]
