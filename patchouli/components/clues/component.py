"""
Clue component - bounded, failure-tolerant search clue generation.

The body sent to the generator is cut to a bounded prefix and the answer
is reduced to a single short line of plain text. Failures are reported,
never raised, so callers can decide whether they are fatal.
"""

from __future__ import annotations

import logging

from patchouli.domain.errors import (
    AssistError,
    AssistTimeoutError,
    ErrorKind,
    OperationError,
)
from patchouli.domain.sanitize import plain_text_line
from patchouli.rules.models import AssistRules

from .models import ClueOutput, GenerateCluesInput
from .ports import ClueGeneratorPort

logger = logging.getLogger(__name__)


def _failure(kind: ErrorKind, code: str, message: str) -> ClueOutput:
    return ClueOutput(
        clues=None,
        errors=[OperationError(kind=kind, code=code, message=message, field="search_clues")],
        success=False,
    )


def run_generate(
    inp: GenerateCluesInput,
    *,
    generator: ClueGeneratorPort | None,
    rules: AssistRules,
) -> ClueOutput:
    """
    Generate search clues for a post body.

    Args:
        inp: Input containing the body text.
        generator: Clue generator port, None when AI assistance is disabled.
        rules: Assist limits (input prefix, output length).

    Returns:
        ClueOutput with the sanitized clue line or a single error.
    """
    body = inp.body.strip()
    if not body:
        return ClueOutput(
            clues=None,
            errors=[
                OperationError(
                    kind=ErrorKind.VALIDATION_ERROR,
                    code="body_required",
                    message="Body is required to generate clues",
                    field="body",
                )
            ],
            success=False,
        )

    if generator is None:
        return _failure(
            ErrorKind.EXTERNAL_UNAVAILABLE, "assist_disabled", "AI assistance is not configured"
        )

    try:
        raw = generator.generate(body[: rules.clue_input_chars])
    except AssistTimeoutError as e:
        logger.warning("Clue generation timed out: %s", e)
        return _failure(ErrorKind.TIMEOUT, "assist_timeout", "AI assistance timed out")
    except AssistError as e:
        logger.warning("Clue generation failed: %s", e)
        return _failure(
            ErrorKind.EXTERNAL_UNAVAILABLE, "assist_unavailable", "AI assistance is unavailable"
        )

    clues = plain_text_line(raw or "", rules.clue_max_chars)
    if not clues:
        return _failure(
            ErrorKind.EXTERNAL_UNAVAILABLE, "assist_empty", "AI assistance returned no clues"
        )

    return ClueOutput(clues=clues, errors=[], success=True)
