"""Tests for comprehension.schemas: validation rules of the shared models."""

import pytest
from pydantic import ValidationError

from comprehension.schemas import (
    AnswerState,
    EvaluationResult,
    QuestionStatus,
    QuestionType,
    UserInfo,
    UserScore,
)


class TestUserInfo:
    def test_accepts_camel_case(self) -> None:
        user = UserInfo.model_validate({"firstName": "Amine", "lastName": "Benali"})
        assert user.first_name == "Amine"
        assert user.model_dump(by_alias=True) == {"firstName": "Amine", "lastName": "Benali"}

    @pytest.mark.parametrize("first, last", [("", "Benali"), ("Amine", "   ")])
    def test_rejects_blank(self, first: str, last: str) -> None:
        with pytest.raises(ValidationError):
            UserInfo(first_name=first, last_name=last)

    def test_frozen(self) -> None:
        user = UserInfo(first_name="Amine", last_name="Benali")
        with pytest.raises(ValidationError):
            user.first_name = "Sami"


class TestStoryData:
    def test_valid_story(self, make_story) -> None:
        story = make_story()
        assert story.question(3).type is QuestionType.INFERENTIAL
        assert story.question(7).type is QuestionType.EVALUATIVE

    def test_unknown_question(self, make_story) -> None:
        with pytest.raises(KeyError):
            make_story().question(11)

    def test_rejects_wrong_composition(self, make_story_payload, make_story) -> None:
        questions = make_story_payload()["questions"]
        questions[6]["type"] = "LITERAL"
        with pytest.raises(ValidationError):
            make_story(questions=questions)

    def test_rejects_duplicate_ids(self, make_story_payload, make_story) -> None:
        questions = make_story_payload()["questions"]
        questions[1]["id"] = 1
        with pytest.raises(ValidationError):
            make_story(questions=questions)

    def test_rejects_short_glossary(self, make_story) -> None:
        with pytest.raises(ValidationError):
            make_story(glossary=[{"word": "a", "definition": "b"}])

    def test_rejects_empty_content(self, make_story) -> None:
        with pytest.raises(ValidationError):
            make_story(content="  ")


class TestScores:
    def test_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            EvaluationResult(is_correct=True, feedback="ok", score=3)

    def test_total_must_match(self) -> None:
        with pytest.raises(ValidationError):
            UserScore(literal=1, inferential=1, evaluative=1, total=4)

    def test_subscore_ceiling(self) -> None:
        with pytest.raises(ValidationError):
            UserScore(literal=0, inferential=0, evaluative=3, total=3)


class TestQuestionStatus:
    def test_terminal_states(self) -> None:
        assert QuestionStatus.CORRECT.is_terminal
        assert QuestionStatus.FAILED_FINAL.is_terminal
        assert not QuestionStatus.IDLE.is_terminal
        assert not QuestionStatus.INCORRECT_RETRY.is_terminal

    def test_answer_state_defaults(self) -> None:
        state = AnswerState()
        assert state.model_dump(by_alias=True) == {
            "answer": "",
            "status": QuestionStatus.IDLE,
            "feedback": None,
            "attempt": 0,
        }
