"""
Scoring for test attempts.

All-or-nothing per question: a question earns its full points only when the
recorded answer set matches the correct-answer set exactly. Values are compared
as strings and order does not matter.
"""
from typing import Dict, Iterable, List, Mapping, Optional

from quizdesk.core.config import settings
from quizdesk.schemas.questions import Question, QuestionType
from quizdesk.schemas.responses import ScoreResult


def _as_set(values: Optional[Iterable[str]]) -> frozenset:
    return frozenset(str(value).strip() for value in (values or []))


def score_question(
    question: Question,
    answer: Optional[List[str]],
    score_single_choice: Optional[bool] = None,
) -> int:
    """
    Points awarded for one question.

    - multiple: the non-empty answer set must equal the correct set.
    - single: exactly one answer, equal to the single correct answer. Disabled
      when SCORE_SINGLE_CHOICE is off.

    Args:
        question: The question
        answer: Recorded answer values, or None if unanswered
        score_single_choice: Override for SCORE_SINGLE_CHOICE

    Returns:
        question.points or 0
    """
    if score_single_choice is None:
        score_single_choice = settings.SCORE_SINGLE_CHOICE

    submitted = _as_set(answer)
    correct = _as_set(question.correct_answers)
    if not submitted or not correct:
        return 0

    if question.type == QuestionType.MULTIPLE:
        return question.points if submitted == correct else 0

    if question.type == QuestionType.SINGLE and score_single_choice:
        if len(submitted) == 1 and len(correct) == 1 and submitted == correct:
            return question.points

    return 0


def score_attempt(
    questions: List[Question],
    answers: Mapping[int, List[str]],
    score_single_choice: Optional[bool] = None,
) -> ScoreResult:
    """
    Score a set of answers against the answer key.

    The total is the sum of points over all questions, answered or not.

    Args:
        questions: Questions in attempt order
        answers: Recorded answers keyed by question index
        score_single_choice: Override for SCORE_SINGLE_CHOICE

    Returns:
        ScoreResult with score, total and per-question points
    """
    per_question = [
        score_question(question, answers.get(index), score_single_choice)
        for index, question in enumerate(questions)
    ]
    return ScoreResult(
        score=sum(per_question),
        total=sum(question.points for question in questions),
        per_question=per_question,
    )


def answered_indexes(answers: Dict[int, List[str]]) -> List[int]:
    """Indexes with a non-empty recorded answer, sorted."""
    return sorted(index for index, values in answers.items() if values)
