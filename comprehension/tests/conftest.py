"""Shared test fixtures for the comprehension test suite.

Factory-pattern fixtures that return callables accepting **overrides, plus
a scriptable fake model that answers all three Gateway prompts.

Fixtures:
    mock_client: Factory for MockClient instances
    make_story_payload: Factory for a model-shaped assessment JSON dict
    make_story: Factory for valid StoryData instances
    fake_model: Scriptable responder for MockClient (assessment/evaluation/feedback)
    gateway: Gateway wired to a MockClient driven by fake_model
"""

import json
from typing import Any

import pytest

from comprehension.ai.gateway import Gateway
from comprehension.ai.providers.base import InlineImage
from comprehension.ai.providers.mock import MockClient
from comprehension.schemas import StoryData

# Question types laid out so that id 3 is INFERENTIAL and id 7 EVALUATIVE.
QUESTION_LAYOUT = [
    "LITERAL",
    "LITERAL",
    "INFERENTIAL",
    "LITERAL",
    "INFERENTIAL",
    "LITERAL",
    "EVALUATIVE",
    "INFERENTIAL",
    "INFERENTIAL",
    "EVALUATIVE",
]

PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_DATA_URL = f"data:image/png;base64,{PNG_BASE64}"


def question_text(question_id: int) -> str:
    return f"Question numéro {question_id} ?"


def _build_story_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "title": "Le petit chevalier",
        "content": (
            "Il était une fois un petit chevalier qui rêvait de gloire. "
            "Chaque matin, il partait à l'aventure avec son cheval."
        ),
        "glossary": [
            {"word": "chevalier", "definition": "Un soldat à cheval du Moyen Âge."},
            {"word": "gloire", "definition": "Le fait d'être admiré par tous."},
            {"word": "aventure", "definition": "Un voyage plein de surprises."},
        ],
        "questions": [
            {"id": i, "text": question_text(i), "type": qtype}
            for i, qtype in enumerate(QUESTION_LAYOUT, start=1)
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_story_payload():
    """Returns a factory for assessment payloads as the model would send them."""
    return _build_story_payload


@pytest.fixture
def make_story():
    """Returns a factory for valid StoryData instances."""

    def _make(**overrides: Any) -> StoryData:
        return StoryData.model_validate(_build_story_payload(**overrides))

    return _make


@pytest.fixture
def mock_client():
    """Returns a factory function for creating MockClient instances."""

    def _make(**kwargs: Any) -> MockClient:
        return MockClient(**kwargs)

    return _make


# ---------------------------------------------------------------------------
# Fake model
# ---------------------------------------------------------------------------

_ANSWER_MARKER = 'RÉPONSE DE L\'ÉLÈVE :\n"""'


class FakeModel:
    """Answers the three Gateway prompts like a well-behaved model.

    - Prompts with an image get ``story_payload`` as JSON (or raise
      ``assessment_error``).
    - Correction prompts get the next scripted verdict for their question,
      else ``default_verdict``. Every (question text, answer) is recorded.
    - Anything else is the final feedback prompt and gets ``final_text``.
    """

    def __init__(self, story_payload: dict[str, Any]) -> None:
        self.story_payload = story_payload
        self.assessment_error: Exception | None = None
        self.default_verdict: dict[str, Any] = {
            "isCorrect": True,
            "score": 2,
            "feedback": "Bravo, c'est juste !",
            "correctAnswer": "Une réponse modèle.",
        }
        self.verdicts: dict[str, list[dict[str, Any]]] = {}
        self.evaluated: list[tuple[str, str]] = []
        self.final_prompts: list[str] = []
        self.final_text = "Bravo Amine ! Tu as très bien lu ce texte."

    def script(self, question_id: int, *verdicts: dict[str, Any]) -> None:
        """Queues verdicts for one question, consumed one per evaluation."""
        self.verdicts.setdefault(question_text(question_id), []).extend(verdicts)

    def __call__(self, prompt: str, image: InlineImage | None) -> str:
        if image is not None:
            if self.assessment_error is not None:
                raise self.assessment_error
            return json.dumps(self.story_payload)

        if _ANSWER_MARKER in prompt:
            answer = prompt.split(_ANSWER_MARKER, 1)[1].split('"""', 1)[0]
            asked = next(
                text for text in self._question_texts() if f'"""{text}"""' in prompt
            )
            self.evaluated.append((asked, answer))
            queue = self.verdicts.get(asked)
            verdict = queue.pop(0) if queue else self.default_verdict
            return json.dumps(verdict)

        self.final_prompts.append(prompt)
        return self.final_text

    def _question_texts(self) -> list[str]:
        return [q["text"] for q in self.story_payload["questions"]]


@pytest.fixture
def fake_model() -> FakeModel:
    """A fresh FakeModel serving the default story payload."""
    return FakeModel(_build_story_payload())


@pytest.fixture
def gateway(fake_model: FakeModel) -> Gateway:
    """A Gateway whose client is driven by ``fake_model``."""
    return Gateway(MockClient(responder=fake_model))
