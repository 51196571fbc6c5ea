"""LLM Gateway: the three schema-constrained model calls of an assessment.

- ``generate_assessment``: photo of a printed text → StoryData
  (transcription, title, 10 questions, glossary).
- ``evaluate_answer``: one pupil answer → EvaluationResult.
- ``generate_final_feedback``: score → a few motivating sentences.

The model is an untrusted source: every field is re-validated, defaulted
or sanitized here so that the engine and the session never see raw model
output. Only ``generate_assessment`` raises (LLMFailure); the other two
always return something the pupil can be shown.

Tier 2 service: imports from providers/base (T1), extraction, prompts,
safety, usage, models and schemas.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Any

import jsonschema
from pydantic import ValidationError

from comprehension.ai.extraction import extract_text, parse_json_object, usage_counts
from comprehension.ai.prompts import (
    STORY_SCHEMA,
    build_assessment_prompt,
    build_evaluation_prompt,
    build_final_feedback_prompt,
)
from comprehension.ai.providers.base import InlineImage, LLMClient
from comprehension.ai.safety import sanitize_correct_answer, sanitize_feedback
from comprehension.ai.usage import log_ai_call
from comprehension.models import ModelConfig, resolve_tier
from comprehension.schemas import (
    GLOSSARY_MAX,
    QUESTION_COMPOSITION,
    EvaluationResult,
    Question,
    QuestionType,
    StoryData,
    UserScore,
)

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"
DEFAULT_IMAGE_MIME_TYPE = "image/png"

CONTENT_UNAVAILABLE = "Le texte n'a pas pu être extrait de l'image."
DEFAULT_TITLE = "Mon texte"
FALLBACK_FEEDBACK = "Je n'ai pas compris ta réponse, essaie encore 😊"
DEFAULT_FINAL_FEEDBACK = (
    "Bravo pour ton travail ! Continue à lire chaque jour, tu progresses."
)

_ASSESSMENT_FAILED = "L'analyse de l'image a échoué. Réessaie avec une autre photo."
_TRUE_STRINGS = frozenset({"true", "vrai", "oui", "yes", "1"})


class LLMFailure(Exception):
    """Raised when an assessment cannot be built from the model's output.

    ``str(exc)`` is a French message safe to show to the pupil; the
    underlying cause is chained and logged, never displayed.
    """

    def __init__(self, message: str = _ASSESSMENT_FAILED) -> None:
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------


def split_data_url(value: str) -> tuple[str | None, str]:
    """Splits ``data:<mime>;base64,<payload>`` into (mime, payload).

    Raw base64 without a header is returned as ``(None, value)``.
    """
    value = value.strip()
    if value.startswith("data:") and "," in value:
        header, payload = value.split(",", 1)
        mime = header[len("data:"):].split(";", 1)[0].strip()
        return (mime or None), payload
    return None, value


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _clamp_score(value: Any) -> int:
    """Clamps a model score into {0, 1, 2}; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0
    try:
        score = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, min(2, score))


def _coerce_question_types(payload: dict[str, Any]) -> None:
    """Upper-cases question types in place so "literal" matches LITERAL."""
    questions = payload.get("questions")
    if not isinstance(questions, list):
        return
    for item in questions:
        if isinstance(item, dict) and isinstance(item.get("type"), str):
            item["type"] = item["type"].strip().upper()


def _select_questions(raw_questions: list[dict[str, Any]]) -> list[Question]:
    """Keeps the first 4/4/2 questions of each type, renumbered 1..10.

    Raises:
        LLMFailure: If the model produced too few questions of some type.
    """
    needed = dict(QUESTION_COMPOSITION)
    kept: list[tuple[str, QuestionType]] = []
    for item in raw_questions:
        qtype = QuestionType(item["type"])
        text = str(item["text"]).strip()
        if not text or needed[qtype] == 0:
            continue
        needed[qtype] -= 1
        kept.append((text, qtype))

    missing = {t.value: n for t, n in needed.items() if n}
    if missing:
        logger.warning("Assessment rejected, missing questions by type: %s", missing)
        raise LLMFailure()

    return [
        Question(id=index, text=text, type=qtype)
        for index, (text, qtype) in enumerate(kept, start=1)
    ]


def _build_story(payload: dict[str, Any]) -> StoryData:
    """Turns a schema-valid payload into a StoryData."""
    content = str(payload["content"])
    if not content.strip():
        logger.warning("Model returned empty content; using sentinel text")
        content = CONTENT_UNAVAILABLE

    glossary = [
        {"word": str(item["word"]).strip(), "definition": str(item["definition"]).strip()}
        for item in payload["glossary"]
        if str(item["word"]).strip()
    ][:GLOSSARY_MAX]

    return StoryData(
        title=str(payload["title"]).strip() or DEFAULT_TITLE,
        content=content,
        glossary=glossary,
        questions=_select_questions(payload["questions"]),
    )


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class Gateway:
    """Mediates all LLM traffic for an assessment session.

    Stateless apart from its injected client and per-operation model
    configuration; one instance can serve any number of sessions.

    Args:
        client: The LLM client (GeminiClient in production, MockClient in tests).
        assessment_config: Model for transcription + quiz generation.
        evaluation_config: Model for answer correction.
        feedback_config: Model for the final encouragement.
    """

    def __init__(
        self,
        client: LLMClient,
        *,
        assessment_config: ModelConfig | None = None,
        evaluation_config: ModelConfig | None = None,
        feedback_config: ModelConfig | None = None,
    ) -> None:
        self._client = client
        self._assessment_config = assessment_config or resolve_tier("vision")
        self._evaluation_config = evaluation_config or resolve_tier("fast")
        self._feedback_config = feedback_config or resolve_tier("creative")

    async def _call(self, call_type: str, model_config: ModelConfig, **kwargs: Any) -> Any:
        """Runs one client call and logs its usage."""
        start = time.monotonic()
        response = await self._client.generate(model_config=model_config, **kwargs)
        usage = usage_counts(response)
        log_ai_call(
            model_id=model_config.model_id,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            latency_ms=(time.monotonic() - start) * 1000,
            call_type=call_type,
        )
        return response

    # -- Op A ---------------------------------------------------------------

    async def generate_assessment(
        self,
        image_base64: str,
        mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
    ) -> StoryData:
        """Transcribes a photographed text and builds its quiz.

        Args:
            image_base64: Base64 image bytes, with or without a ``data:`` header.
                A header's MIME type wins over ``mime_type``.
            mime_type: Declared MIME type of the image.

        Returns:
            A StoryData satisfying the fixed quiz shape.

        Raises:
            LLMFailure: On transport error, unparseable JSON, or output that
                cannot be shaped into a valid StoryData.
        """
        header_mime, payload_b64 = split_data_url(image_base64)
        image = InlineImage(mime_type=header_mime or mime_type, data=payload_b64)

        try:
            response = await self._call(
                "assessment",
                self._assessment_config,
                prompt=build_assessment_prompt(),
                image=image,
                response_mime_type=JSON_MIME_TYPE,
                response_schema=STORY_SCHEMA,
            )
        except Exception as exc:
            logger.exception("Assessment request failed")
            raise LLMFailure() from exc

        raw = extract_text(response)
        try:
            payload = parse_json_object(raw)
        except ValueError as exc:
            logger.warning("Assessment JSON unparseable: %s", raw[:200])
            raise LLMFailure() from exc

        _coerce_question_types(payload)
        try:
            jsonschema.validate(payload, STORY_SCHEMA)
        except jsonschema.ValidationError as exc:
            logger.warning("Assessment JSON violates schema: %s", exc.message)
            raise LLMFailure() from exc

        try:
            story = _build_story(payload)
        except ValidationError as exc:
            logger.warning("Assessment rejected: %s", exc)
            raise LLMFailure() from exc

        counts = Counter(q.type.value for q in story.questions)
        logger.info(
            "Assessment built: title=%r chars=%d questions=%s glossary=%d",
            story.title,
            len(story.content),
            dict(counts),
            len(story.glossary),
        )
        return story

    # -- Op B ---------------------------------------------------------------

    async def evaluate_answer(
        self,
        question: Question,
        student_answer: str,
        story: StoryData,
    ) -> EvaluationResult:
        """Grades one answer against the story.

        Never raises for model or transport problems: those produce a
        neutral "wrong" result with a kind message and no correct answer.
        """
        try:
            response = await self._call(
                "evaluation",
                self._evaluation_config,
                prompt=build_evaluation_prompt(question, student_answer, story),
                response_mime_type=JSON_MIME_TYPE,
            )
            data = parse_json_object(extract_text(response))
        except Exception:
            logger.warning(
                "Evaluation failed for question %d; using fallback result",
                question.id,
                exc_info=True,
            )
            return EvaluationResult(
                is_correct=False,
                score=0,
                feedback=FALLBACK_FEEDBACK,
                correct_answer="",
            )

        score = _clamp_score(data.get("score"))
        if "isCorrect" in data:
            is_correct = _coerce_bool(data["isCorrect"])
        else:
            is_correct = score == 2

        return EvaluationResult(
            is_correct=is_correct,
            is_incomplete=_coerce_bool(data.get("isIncomplete", False)),
            feedback=sanitize_feedback(data.get("feedback")),
            correct_answer=sanitize_correct_answer(data.get("correctAnswer")),
            score=score,
        )

    # -- Op C ---------------------------------------------------------------

    async def generate_final_feedback(
        self,
        total_score: int,
        max_score: int,
        first_name: str,
        breakdown: UserScore | None = None,
    ) -> str:
        """Writes a short motivating message for the results screen.

        Returns DEFAULT_FINAL_FEEDBACK when the call fails or yields nothing.
        """
        prompt = build_final_feedback_prompt(total_score, max_score, first_name, breakdown)
        try:
            response = await self._call(
                "final_feedback", self._feedback_config, prompt=prompt
            )
        except Exception:
            logger.warning("Final feedback request failed", exc_info=True)
            return DEFAULT_FINAL_FEEDBACK

        text = extract_text(response).strip()
        if not text or text == "{}":
            return DEFAULT_FINAL_FEEDBACK
        return text

