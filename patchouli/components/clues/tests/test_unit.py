"""
Clue component unit tests.
"""

import pytest

from patchouli.components.clues import GenerateCluesInput, run_generate
from patchouli.domain.errors import (
    AssistTimeoutError,
    AssistUnavailableError,
    ErrorKind,
)
from patchouli.rules.models import AssistRules


class MockGenerator:
    def __init__(self, answer: str = "", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.received: list[str] = []

    def generate(self, body: str) -> str:
        self.received.append(body)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def rules() -> AssistRules:
    return AssistRules(clue_input_chars=20, clue_max_chars=30)


def test_answer_is_flattened_to_one_line(rules: AssistRules) -> None:
    generator = MockGenerator(answer="## Clues\n- **backup**\n- world save")

    result = run_generate(GenerateCluesInput(body="Backs up worlds"), generator=generator, rules=rules)

    assert result.success
    assert result.clues == "Clues - backup - world save"


def test_answer_is_truncated(rules: AssistRules) -> None:
    generator = MockGenerator(answer="backup, " * 10)

    result = run_generate(GenerateCluesInput(body="Body"), generator=generator, rules=rules)

    assert result.clues is not None
    assert len(result.clues) <= rules.clue_max_chars
    assert not result.clues.endswith(",")


def test_only_a_prefix_of_the_body_is_sent(rules: AssistRules) -> None:
    generator = MockGenerator(answer="clue")

    run_generate(GenerateCluesInput(body="x" * 100), generator=generator, rules=rules)

    assert generator.received == ["x" * rules.clue_input_chars]


def test_blank_body_is_rejected(rules: AssistRules) -> None:
    generator = MockGenerator(answer="clue")

    result = run_generate(GenerateCluesInput(body="  \n "), generator=generator, rules=rules)

    assert result.errors[0].kind == ErrorKind.VALIDATION_ERROR
    assert generator.received == []


@pytest.mark.parametrize(
    ("generator", "kind", "code"),
    [
        (MockGenerator(error=AssistTimeoutError("slow")), ErrorKind.TIMEOUT, "assist_timeout"),
        (
            MockGenerator(error=AssistUnavailableError("503")),
            ErrorKind.EXTERNAL_UNAVAILABLE,
            "assist_unavailable",
        ),
        (MockGenerator(answer="***"), ErrorKind.EXTERNAL_UNAVAILABLE, "assist_empty"),
        (None, ErrorKind.EXTERNAL_UNAVAILABLE, "assist_disabled"),
    ],
)
def test_failures_are_reported_not_raised(
    rules: AssistRules, generator: MockGenerator | None, kind: ErrorKind, code: str
) -> None:
    result = run_generate(GenerateCluesInput(body="Body"), generator=generator, rules=rules)

    assert not result.success
    assert result.clues is None
    assert result.errors[0].kind == kind
    assert result.errors[0].code == code
