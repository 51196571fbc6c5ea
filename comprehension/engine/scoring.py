"""Score aggregation for a finished quiz.

One point per correct answer, bucketed by question type. There is no
partial credit in the aggregate: the Gateway's 0/1/2 grade only shapes the
feedback text. A question answered correctly on the second attempt still
earns its full point.
"""

from __future__ import annotations

from collections.abc import Iterable

from comprehension.schemas import QuestionType, Result, UserScore


def aggregate_score(results: Iterable[Result]) -> UserScore:
    """Sums correct results per question type.

    Raises:
        pydantic.ValidationError: If a bucket exceeds its ceiling, which can
            only happen when results do not come from a valid StoryData.
    """
    buckets = {qtype: 0 for qtype in QuestionType}
    for result in results:
        if result.is_correct:
            buckets[result.question.type] += 1

    literal = buckets[QuestionType.LITERAL]
    inferential = buckets[QuestionType.INFERENTIAL]
    evaluative = buckets[QuestionType.EVALUATIVE]
    return UserScore(
        literal=literal,
        inferential=inferential,
        evaluative=evaluative,
        total=literal + inferential + evaluative,
    )
