"""Core data models: shared Pydantic types for the comprehension service.

Every story, question, evaluation, and score flows through these types.
Wire names are camelCase (the browser client's vocabulary); Python
attributes are snake_case. Both are accepted on input.

This is a Tier 1 leaf module: it imports only from pydantic and the stdlib.
No project imports allowed: everything else imports from here.

Usage:
    from comprehension.schemas import StoryData, Question, UserScore
"""

from collections import Counter
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """Base for every model that crosses the API boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenWireModel(_WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class QuestionType(str, Enum):
    """Reading-comprehension categories of the French curriculum."""

    LITERAL = "LITERAL"
    INFERENTIAL = "INFERENTIAL"
    EVALUATIVE = "EVALUATIVE"


class QuestionStatus(str, Enum):
    """Per-question lifecycle. CORRECT and FAILED_FINAL are terminal."""

    IDLE = "IDLE"
    CORRECT = "CORRECT"
    INCORRECT_RETRY = "INCORRECT_RETRY"
    FAILED_FINAL = "FAILED_FINAL"

    @property
    def is_terminal(self) -> bool:
        return self in (QuestionStatus.CORRECT, QuestionStatus.FAILED_FINAL)


class AppState(str, Enum):
    """Top-level session states, in the order a pupil walks through them."""

    LOGIN = "LOGIN"
    SETUP = "SETUP"
    LOADING_STORY = "LOADING_STORY"
    READING = "READING"
    QUIZ = "QUIZ"
    RESULTS = "RESULTS"


# Fixed quiz shape. The score ceiling per type equals the question count.
QUESTION_COMPOSITION: dict[QuestionType, int] = {
    QuestionType.LITERAL: 4,
    QuestionType.INFERENTIAL: 4,
    QuestionType.EVALUATIVE: 2,
}
QUESTION_COUNT = sum(QUESTION_COMPOSITION.values())
MAX_SCORE = QUESTION_COMPOSITION
MAX_TOTAL_SCORE = QUESTION_COUNT

GLOSSARY_MIN = 3
GLOSSARY_MAX = 6

MAX_ATTEMPTS = 2


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class UserInfo(_FrozenWireModel):
    """The pupil taking the assessment.

    Frozen: created at login, immutable for the session.
    """

    first_name: str
    last_name: str

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


# ---------------------------------------------------------------------------
# Story
# ---------------------------------------------------------------------------


class Question(_FrozenWireModel):
    """One comprehension question. ``id`` is unique within a story."""

    id: int
    text: str
    type: QuestionType


class GlossaryItem(_FrozenWireModel):
    """A difficult word from the text with a child-level definition."""

    word: str
    definition: str


class StoryData(_FrozenWireModel):
    """Transcribed text plus its quiz.

    Created once per session by the Gateway and never mutated afterwards.
    The validator enforces the fixed quiz shape so that downstream code can
    rely on it.
    """

    title: str
    content: str
    image_url: str | None = None
    glossary: list[GlossaryItem] = Field(default_factory=list)
    questions: list[Question] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_shape(self) -> "StoryData":
        if not self.content.strip():
            raise ValueError("content must not be empty")

        if len(self.questions) != QUESTION_COUNT:
            raise ValueError(
                f"expected {QUESTION_COUNT} questions, got {len(self.questions)}"
            )
        counts = Counter(q.type for q in self.questions)
        for qtype, expected in QUESTION_COMPOSITION.items():
            if counts.get(qtype, 0) != expected:
                raise ValueError(
                    f"expected {expected} {qtype.value} questions, "
                    f"got {counts.get(qtype, 0)}"
                )
        ids = [q.id for q in self.questions]
        if len(set(ids)) != len(ids):
            raise ValueError("question ids must be unique")

        if not GLOSSARY_MIN <= len(self.glossary) <= GLOSSARY_MAX:
            raise ValueError(
                f"glossary must hold {GLOSSARY_MIN}-{GLOSSARY_MAX} items, "
                f"got {len(self.glossary)}"
            )
        return self

    def question(self, question_id: int) -> Question:
        """Returns the question with the given id.

        Raises:
            KeyError: If no question has that id.
        """
        for q in self.questions:
            if q.id == question_id:
                return q
        raise KeyError(question_id)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class EvaluationResult(_FrozenWireModel):
    """Normalized verdict on one answer.

    ``score`` is the model's 0/1/2 partial-credit grade. It is shown to the
    pupil through feedback only; aggregation uses ``is_correct``.
    """

    is_correct: bool
    is_incomplete: bool = False
    feedback: str
    correct_answer: str = ""
    score: int = Field(default=0, ge=0, le=2)


class AnswerState(_WireModel):
    """Read-only view of one question's answer lifecycle."""

    answer: str = ""
    status: QuestionStatus = QuestionStatus.IDLE
    feedback: EvaluationResult | None = None
    attempt: int = Field(default=0, ge=0, le=MAX_ATTEMPTS)


class Result(_FrozenWireModel):
    """Per-question outcome emitted when the quiz is complete."""

    question: Question
    user_answer: str
    is_correct: bool
    feedback: str | None = None
    correct_answer: str | None = None


class UserScore(_FrozenWireModel):
    """Aggregate score, one point per correct answer, bucketed by type."""

    literal: int = Field(default=0, ge=0, le=MAX_SCORE[QuestionType.LITERAL])
    inferential: int = Field(default=0, ge=0, le=MAX_SCORE[QuestionType.INFERENTIAL])
    evaluative: int = Field(default=0, ge=0, le=MAX_SCORE[QuestionType.EVALUATIVE])
    total: int = Field(default=0, ge=0, le=MAX_TOTAL_SCORE)

    @model_validator(mode="after")
    def _check_total(self) -> "UserScore":
        if self.total != self.literal + self.inferential + self.evaluative:
            raise ValueError("total must equal the sum of the subscores")
        return self


class ReportData(_FrozenWireModel):
    """Everything the CSV export needs: one row per pupil."""

    first_name: str
    last_name: str
    literal: int
    inferential: int
    evaluative: int
    total: int


# ---------------------------------------------------------------------------
# API envelope
# ---------------------------------------------------------------------------


class ApiError(BaseModel):
    """Error detail inside ApiResponse.error.

    code is an uppercase string like "INVALID_TRANSITION",
    "ASSESSMENT_FAILED". Not an enum: error codes grow with the surface.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ApiResponse(BaseModel):
    """Universal response envelope: every API endpoint returns this shape."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    data: Any | None = None
    error: ApiError | None = None
