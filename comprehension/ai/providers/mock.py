"""Mock LLM client for testing and development.

Deterministic, zero-cost LLMClient implementation that returns configurable
canned responses. Used by:
- Every Gateway, engine and session test (via conftest.mock_client fixture)
- Development mode (AI_BACKEND=mock) for people without an API key, via
  demo_responder which plays a whole assessment offline
- Reference implementation of the LLMClient contract

Tier 2 service: imports only from base.py (Tier 1).
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from comprehension.ai.providers.base import InlineImage, LLMClient
from comprehension.models import ModelConfig

_DEFAULT_RESPONSE = "{}"

Responder = Callable[[str, InlineImage | None], Any]


@dataclass(frozen=True)
class RecordedCall:
    """One call received by MockClient, kept for assertions."""

    prompt: str
    model_config: ModelConfig
    image: InlineImage | None
    response_mime_type: str | None
    response_schema: dict[str, Any] | None


class MockClient(LLMClient):
    """Deterministic LLM client for testing.

    Responses are served from ``responder`` when given, otherwise popped
    from ``responses`` in order; the last response repeats once the queue
    is down to one item. A response that is an Exception instance is
    raised instead of returned.

    Args:
        responses: Canned raw responses (strings, dicts, SDK-like objects).
        responder: Callable ``(prompt, image) -> response`` for
            prompt-dependent replies. Takes precedence over ``responses``.
        error: If set, every call raises this immediately.
    """

    def __init__(
        self,
        responses: list[Any] | None = None,
        responder: Responder | None = None,
        error: Exception | None = None,
    ) -> None:
        self.responses = list(responses) if responses is not None else [_DEFAULT_RESPONSE]
        self.responder = responder
        self.error = error
        self.calls: list[RecordedCall] = []

    async def generate(
        self,
        *,
        prompt: str,
        model_config: ModelConfig,
        image: InlineImage | None = None,
        response_mime_type: str | None = None,
        response_schema: dict[str, Any] | None = None,
    ) -> Any:
        """Records the call and returns the next canned response."""
        self.calls.append(
            RecordedCall(
                prompt=prompt,
                model_config=model_config,
                image=image,
                response_mime_type=response_mime_type,
                response_schema=response_schema,
            )
        )
        if self.error is not None:
            raise self.error

        if self.responder is not None:
            response = self.responder(prompt, image)
        elif len(self.responses) > 1:
            response = self.responses.pop(0)
        else:
            response = self.responses[0] if self.responses else _DEFAULT_RESPONSE

        if isinstance(response, Exception):
            raise response
        return response


# ---------------------------------------------------------------------------
# Development mode
# ---------------------------------------------------------------------------

_ANSWER_MARKER = 'RÉPONSE DE L\'ÉLÈVE :\n"""'

DEMO_STORY: dict[str, Any] = {
    "title": "Le renard et la lanterne",
    "content": (
        "Au bord de la forêt vivait un petit renard nommé Filou. "
        "Un soir d'hiver, il trouva une vieille lanterne près du moulin. "
        "Filou l'emporta dans son terrier pour éclairer ses longues nuits. "
        "Mais la lanterne appartenait à Rose, la fille du meunier, qui la "
        "cherchait partout en pleurant. Le lendemain, Filou entendit ses "
        "sanglots et rapporta la lanterne devant la porte du moulin. "
        "Depuis ce jour, Rose laisse chaque soir un morceau de pain sur le seuil."
    ),
    "glossary": [
        {"word": "terrier", "definition": "Un trou creusé dans la terre où vit un animal."},
        {"word": "meunier", "definition": "La personne qui fait la farine au moulin."},
        {"word": "sanglots", "definition": "Des pleurs forts et saccadés."},
    ],
    "questions": [
        {"id": 1, "text": "Comment s'appelle le petit renard ?", "type": "LITERAL"},
        {"id": 2, "text": "Où Filou trouve-t-il la lanterne ?", "type": "LITERAL"},
        {"id": 3, "text": "À qui appartient la lanterne ?", "type": "LITERAL"},
        {"id": 4, "text": "Que laisse Rose sur le seuil chaque soir ?", "type": "LITERAL"},
        {"id": 5, "text": "Pourquoi Filou emporte-t-il la lanterne ?", "type": "INFERENTIAL"},
        {"id": 6, "text": "Pourquoi Rose pleure-t-elle ?", "type": "INFERENTIAL"},
        {
            "id": 7,
            "text": "Qu'est-ce qui pousse Filou à rapporter la lanterne ?",
            "type": "INFERENTIAL",
        },
        {"id": 8, "text": "Pourquoi Rose laisse-t-elle du pain ?", "type": "INFERENTIAL"},
        {
            "id": 9,
            "text": "Penses-tu que Filou a bien agi ? Explique.",
            "type": "EVALUATIVE",
        },
        {
            "id": 10,
            "text": "Qu'aurais-tu fait à la place de Filou ? Pourquoi ?",
            "type": "EVALUATIVE",
        },
    ],
}

DEMO_FEEDBACK = "Bravo pour ta lecture ! Continue à lire chaque jour, tu progresses."


def demo_responder(prompt: str, image: InlineImage | None) -> str:
    """Plays the model's part for AI_BACKEND=mock.

    Any image becomes DEMO_STORY. A correction prompt gets a verdict: answers
    of three words or more are correct, shorter ones are not. Everything
    else is the final feedback.
    """
    if image is not None:
        return json.dumps(DEMO_STORY, ensure_ascii=False)

    if _ANSWER_MARKER in prompt:
        answer = prompt.split(_ANSWER_MARKER, 1)[1].split('"""', 1)[0]
        is_correct = len(answer.split()) >= 3
        return json.dumps(
            {
                "isCorrect": is_correct,
                "score": 2 if is_correct else 0,
                "feedback": (
                    "Très bien, ta réponse est juste !"
                    if is_correct
                    else "Essaie d'écrire une phrase complète avec des mots du texte."
                ),
                "correctAnswer": "Relis le texte : la réponse s'y trouve.",
            },
            ensure_ascii=False,
        )

    return DEMO_FEEDBACK
