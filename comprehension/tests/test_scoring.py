"""Tests for comprehension.engine.scoring."""

from comprehension.engine.scoring import aggregate_score
from comprehension.schemas import Result


def _results(story, wrong_ids=()):
    return [
        Result(question=q, user_answer="x", is_correct=q.id not in wrong_ids)
        for q in story.questions
    ]


class TestAggregateScore:
    def test_perfect_score(self, make_story) -> None:
        score = aggregate_score(_results(make_story()))
        assert (score.literal, score.inferential, score.evaluative, score.total) == (4, 4, 2, 10)

    def test_buckets_by_type(self, make_story) -> None:
        # 1 and 2 are LITERAL, 3 is INFERENTIAL, 7 is EVALUATIVE
        score = aggregate_score(_results(make_story(), wrong_ids={1, 2, 3, 7}))
        assert score.literal == 2
        assert score.inferential == 3
        assert score.evaluative == 1
        assert score.total == 6

    def test_all_wrong(self, make_story) -> None:
        story = make_story()
        score = aggregate_score(_results(story, wrong_ids={q.id for q in story.questions}))
        assert score.total == 0

    def test_empty(self) -> None:
        assert aggregate_score([]).total == 0
