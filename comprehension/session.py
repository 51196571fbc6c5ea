"""Session Orchestrator: the top-level state machine of one assessment.

    LOGIN ─login─► SETUP ─upload─► LOADING_STORY ─story─► READING
                     ▲                   │
                     └──── failure ──────┘
    READING ─finish_reading─► QUIZ ─finish_quiz─► RESULTS ─quit─► LOGIN

The orchestrator owns the pupil identity, the story, the compiled results,
the final score and the final feedback text. It owns the QuestionEngine
while in QUIZ and drops it on the way out. The Gateway is injected and
shared; nothing here holds a reference back to the caller.

Every method checks the current state first and raises InvalidTransition
without side effects when called out of turn.
"""

from __future__ import annotations

import logging
from typing import Any

from comprehension.ai.gateway import DEFAULT_IMAGE_MIME_TYPE, Gateway, LLMFailure, split_data_url
from comprehension.engine.question_engine import QuestionEngine
from comprehension.engine.scoring import aggregate_score
from comprehension.schemas import (
    MAX_TOTAL_SCORE,
    AppState,
    ReportData,
    Result,
    StoryData,
    UserInfo,
    UserScore,
)

logger = logging.getLogger(__name__)


class InvalidTransition(Exception):
    """An intent arrived in a state that does not accept it."""

    def __init__(self, action: str, state: AppState) -> None:
        self.action = action
        self.state = state
        self.message = f"Action « {action} » impossible à l'étape {state.value}."
        super().__init__(self.message)


class AssessmentFailed(Exception):
    """The photo could not be turned into a quiz; the session is back in SETUP."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _as_data_url(image: str, mime_type: str) -> str:
    """Returns the upload as a data URL the reading view can display."""
    if image.strip().startswith("data:"):
        return image.strip()
    return f"data:{mime_type};base64,{image.strip()}"


class SessionOrchestrator:
    """Drives one pupil through upload, reading, quiz and results.

    Args:
        gateway: The LLM Gateway shared by the session and its engine.
    """

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway
        self.state: AppState = AppState.LOGIN
        self.user: UserInfo | None = None
        self.story: StoryData | None = None
        self.engine: QuestionEngine | None = None
        self.results: list[Result] = []
        self.score: UserScore | None = None
        self.final_feedback: str = ""
        self.last_error: str | None = None
        self._finishing = False

    def _require(self, action: str, *states: AppState) -> None:
        if self.state not in states:
            raise InvalidTransition(action, self.state)

    # -- LOGIN → SETUP ------------------------------------------------------

    def login(self, first_name: str, last_name: str) -> UserInfo:
        """Stores the pupil's identity and moves to SETUP.

        Raises:
            InvalidTransition: If not in LOGIN.
            ValueError: If either name is blank (pydantic ValidationError);
                the session stays in LOGIN.
        """
        self._require("login", AppState.LOGIN)
        self.user = UserInfo(first_name=first_name, last_name=last_name)
        self.state = AppState.SETUP
        logger.info("Session started")
        return self.user

    # -- SETUP → LOADING_STORY → READING | SETUP ----------------------------

    async def upload(self, image: str, mime_type: str = DEFAULT_IMAGE_MIME_TYPE) -> StoryData:
        """Builds the assessment from an uploaded photo.

        Args:
            image: Base64 image, raw or as a data URL.
            mime_type: The image's MIME type (a data URL header wins).

        Raises:
            InvalidTransition: If not in SETUP.
            AssessmentFailed: If the Gateway could not build a story. The
                session is back in SETUP with ``last_error`` set.
        """
        self._require("upload", AppState.SETUP)
        header_mime, _ = split_data_url(image)
        mime_type = header_mime or mime_type

        self.last_error = None
        self.state = AppState.LOADING_STORY
        try:
            story = await self._gateway.generate_assessment(image, mime_type)
        except LLMFailure as exc:
            self.state = AppState.SETUP
            self.last_error = exc.message
            logger.warning("Assessment failed, back to SETUP")
            raise AssessmentFailed(exc.message) from exc

        self.story = story.model_copy(update={"image_url": _as_data_url(image, mime_type)})
        self.state = AppState.READING
        return self.story

    # -- READING → QUIZ -----------------------------------------------------

    def finish_reading(self) -> QuestionEngine:
        """Starts the quiz on the current story."""
        self._require("finish_reading", AppState.READING)
        self.engine = QuestionEngine(self.story, self._gateway)
        self.state = AppState.QUIZ
        return self.engine

    # -- QUIZ → RESULTS -----------------------------------------------------

    async def finish_quiz(self) -> UserScore:
        """Compiles results, scores them and fetches the final feedback.

        The score is computed before the feedback request and RESULTS is
        entered only once that request has resolved.

        Raises:
            InvalidTransition: If not in QUIZ, or if a previous call is still
                waiting for the final feedback.
            QuizIncomplete: If some question is not terminal; still in QUIZ.
        """
        self._require("finish_quiz", AppState.QUIZ)
        if self._finishing:
            raise InvalidTransition("finish_quiz", self.state)
        results = self.engine.compile_results()
        score = aggregate_score(results)

        self.results = results
        self.score = score
        self.final_feedback = ""
        self._finishing = True
        try:
            self.final_feedback = await self._gateway.generate_final_feedback(
                score.total, MAX_TOTAL_SCORE, self.user.first_name, breakdown=score
            )
        finally:
            self._finishing = False

        self.engine = None
        self.state = AppState.RESULTS
        logger.info(
            "Quiz finished: literal=%d inferential=%d evaluative=%d total=%d",
            score.literal,
            score.inferential,
            score.evaluative,
            score.total,
        )
        return score

    # -- RESULTS ------------------------------------------------------------

    def report(self) -> ReportData:
        """Returns the data for the CSV export."""
        self._require("report", AppState.RESULTS)
        return ReportData(
            first_name=self.user.first_name,
            last_name=self.user.last_name,
            literal=self.score.literal,
            inferential=self.score.inferential,
            evaluative=self.score.evaluative,
            total=self.score.total,
        )

    def quit(self, confirmed: bool = True) -> bool:
        """Clears the session and returns to LOGIN once confirmed.

        Returns:
            True if the session was cleared, False if not confirmed.
        """
        self._require("quit", AppState.RESULTS)
        if not confirmed:
            return False
        self.user = None
        self.story = None
        self.engine = None
        self.results = []
        self.score = None
        self.final_feedback = ""
        self.last_error = None
        self.state = AppState.LOGIN
        logger.info("Session cleared")
        return True

    # -- View model ---------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Serializable view of everything the view layer renders."""

        def dump(model: Any) -> Any:
            return model.model_dump(by_alias=True, mode="json") if model is not None else None

        quiz: dict[str, Any] | None = None
        if self.engine is not None:
            quiz = {
                "answers": {
                    str(qid): dump(state) for qid, state in self.engine.states().items()
                },
                "isEvaluating": self.engine.is_evaluating,
                "isAllComplete": self.engine.is_all_complete,
                "pendingRetryCount": self.engine.pending_retry_count,
            }

        return {
            "state": self.state.value,
            "user": dump(self.user),
            "story": dump(self.story),
            "quiz": quiz,
            "results": [dump(r) for r in self.results],
            "score": dump(self.score),
            "finalFeedback": self.final_feedback,
            "lastError": self.last_error,
        }
