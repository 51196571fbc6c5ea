"""Question Engine: per-question answer lifecycle with a second chance.

Each question walks a small state machine:

    IDLE ──correct──────────► CORRECT          (terminal)
    IDLE ──wrong/incomplete─► INCORRECT_RETRY  (attempt 1)
    INCORRECT_RETRY ─correct► CORRECT          (terminal)
    INCORRECT_RETRY ─wrong──► FAILED_FINAL     (attempt 2, terminal)

The pupil answers all questions, then submits once; every non-terminal
question is evaluated in parallel through the Gateway and the results are
written back in a single pass after the whole batch has resolved. If the
batch fails as a whole nothing changes.

The engine exclusively owns its four maps (answers, statuses, feedbacks,
attempts). Everything outside reads them through ``state()``/``states()``.
"""

from __future__ import annotations

import asyncio
import logging

from comprehension.ai.gateway import Gateway
from comprehension.schemas import (
    MAX_ATTEMPTS,
    AnswerState,
    EvaluationResult,
    Question,
    QuestionStatus,
    Result,
    StoryData,
)

logger = logging.getLogger(__name__)

EMPTY_FIRST_ATTEMPT_FEEDBACK = "Tu n'as pas répondu. Essaie d'écrire quelque chose !"
EMPTY_LAST_ATTEMPT_FEEDBACK = "Tu n'as pas répondu. Voici la réponse."
SUBMISSION_FAILED = "Une erreur est survenue lors de la validation."
QUIZ_INCOMPLETE = "Toutes les questions ne sont pas encore terminées."


class SubmissionError(Exception):
    """A submission batch failed as a whole; no question changed state."""

    def __init__(self, message: str = SUBMISSION_FAILED) -> None:
        super().__init__(message)
        self.message = message


class QuizIncomplete(Exception):
    """Results were requested before every question reached a terminal state."""

    def __init__(self, message: str = QUIZ_INCOMPLETE) -> None:
        super().__init__(message)
        self.message = message


def next_state(
    status: QuestionStatus, attempt: int, result: EvaluationResult
) -> tuple[QuestionStatus, int]:
    """Applies one evaluation to a non-terminal question.

    A correct result leaves the attempt counter untouched; any other result
    increments it, ending at FAILED_FINAL on the last attempt.
    """
    if status.is_terminal:
        raise ValueError(f"Cannot apply an evaluation to a {status.value} question")
    if result.is_correct:
        return QuestionStatus.CORRECT, attempt
    attempt += 1
    if attempt >= MAX_ATTEMPTS:
        return QuestionStatus.FAILED_FINAL, MAX_ATTEMPTS
    return QuestionStatus.INCORRECT_RETRY, attempt


class QuestionEngine:
    """Drives the quiz for one story.

    Args:
        story: The story whose questions are being answered.
        gateway: Gateway used to evaluate answers.
    """

    def __init__(self, story: StoryData, gateway: Gateway) -> None:
        self._story = story
        self._gateway = gateway
        ids = [q.id for q in story.questions]
        self._answers: dict[int, str] = {qid: "" for qid in ids}
        self._statuses: dict[int, QuestionStatus] = {qid: QuestionStatus.IDLE for qid in ids}
        self._feedbacks: dict[int, EvaluationResult | None] = {qid: None for qid in ids}
        self._attempts: dict[int, int] = {qid: 0 for qid in ids}
        self._evaluating = False

    # -- Accessors ----------------------------------------------------------

    @property
    def story(self) -> StoryData:
        return self._story

    @property
    def is_evaluating(self) -> bool:
        """True while a submission batch is in flight (submit is disabled)."""
        return self._evaluating

    @property
    def is_all_complete(self) -> bool:
        """True once every question is CORRECT or FAILED_FINAL."""
        return all(self._statuses[q.id].is_terminal for q in self._story.questions)

    @property
    def pending_retry_count(self) -> int:
        return sum(
            1 for s in self._statuses.values() if s is QuestionStatus.INCORRECT_RETRY
        )

    def state(self, question_id: int) -> AnswerState:
        """Returns a snapshot of one question's state.

        The expected answer is withheld until the question is FAILED_FINAL,
        so a pupil on their second attempt cannot read it.

        Raises:
            KeyError: If the id is not part of the story.
        """
        status = self._statuses[question_id]
        feedback = self._feedbacks[question_id]
        if feedback is not None and status is not QuestionStatus.FAILED_FINAL:
            feedback = feedback.model_copy(update={"correct_answer": ""})
        return AnswerState(
            answer=self._answers[question_id],
            status=status,
            feedback=feedback,
            attempt=self._attempts[question_id],
        )

    def states(self) -> dict[int, AnswerState]:
        """Snapshots of every question, in story order."""
        return {q.id: self.state(q.id) for q in self._story.questions}

    # -- Intents ------------------------------------------------------------

    def set_answer(self, question_id: int, text: str) -> bool:
        """Records the pupil's current text for a question.

        Edits are accepted while a batch is in flight; they are evaluated on
        the next submit. Terminal questions are locked.

        Returns:
            True if the answer was stored, False if the question is locked.

        Raises:
            KeyError: If the id is not part of the story.
        """
        status = self._statuses[question_id]
        if status.is_terminal:
            logger.debug("Ignoring edit on %s question %d", status.value, question_id)
            return False
        self._answers[question_id] = text
        return True

    async def submit(self) -> list[int]:
        """Evaluates every non-terminal question in one parallel batch.

        Returns:
            Ids of the questions whose state was updated, in story order.
            Empty when nothing was pending or a batch is already running.

        Raises:
            SubmissionError: If the batch failed; no state was changed.
        """
        if self._evaluating:
            logger.warning("Submit ignored: a batch is already in flight")
            return []

        # Snapshot at batch start: edits made while awaiting are not part of it.
        batch = [
            (q, self._answers[q.id], self._attempts[q.id])
            for q in self._story.questions
            if not self._statuses[q.id].is_terminal
        ]
        if not batch:
            return []

        self._evaluating = True
        try:
            try:
                results = await asyncio.gather(
                    *(self._evaluate(q, answer, attempt) for q, answer, attempt in batch)
                )
            except Exception as exc:
                logger.exception("Submission batch of %d questions failed", len(batch))
                raise SubmissionError() from exc

            for (question, answer, attempt), result in zip(batch, results):
                status, new_attempt = next_state(
                    self._statuses[question.id], attempt, result
                )
                if status.is_terminal:
                    # Locked questions keep the text that was actually graded.
                    self._answers[question.id] = answer
                self._statuses[question.id] = status
                self._attempts[question.id] = new_attempt
                self._feedbacks[question.id] = result
        finally:
            self._evaluating = False

        logger.info(
            "Batch applied: %d evaluated, %d complete, %d awaiting retry",
            len(batch),
            sum(1 for s in self._statuses.values() if s.is_terminal),
            self.pending_retry_count,
        )
        return [question.id for question, _, _ in batch]

    async def _evaluate(self, question: Question, answer: str, attempt: int) -> EvaluationResult:
        """Evaluates one answer, short-circuiting empty first attempts."""
        if answer.strip():
            return await self._gateway.evaluate_answer(question, answer, self._story)

        if attempt == 0:
            return EvaluationResult(
                is_correct=False,
                is_incomplete=True,
                feedback=EMPTY_FIRST_ATTEMPT_FEEDBACK,
            )

        # Last chance and still empty: ask the model only for the expected answer.
        revealed = await self._gateway.evaluate_answer(question, "", self._story)
        return EvaluationResult(
            is_correct=False,
            is_incomplete=True,
            feedback=EMPTY_LAST_ATTEMPT_FEEDBACK,
            correct_answer=revealed.correct_answer,
        )

    # -- Completion ---------------------------------------------------------

    def compile_results(self) -> list[Result]:
        """Builds the per-question results in original question order.

        Raises:
            QuizIncomplete: If some question is not terminal yet.
        """
        if not self.is_all_complete:
            raise QuizIncomplete()

        results = []
        for question in self._story.questions:
            feedback = self._feedbacks[question.id]
            results.append(
                Result(
                    question=question,
                    user_answer=self._answers[question.id],
                    is_correct=self._statuses[question.id] is QuestionStatus.CORRECT,
                    feedback=feedback.feedback if feedback else None,
                    correct_answer=feedback.correct_answer if feedback else None,
                )
            )
        return results
