# /quizflow/services/grading/mcq.py

"""
Deterministic grading for multiple-choice questions.

`correct_choice` is stored as a string that is either a single choice id or a
comma-joined set of ids. Two submission shapes are accepted:

- a scalar `selected_choice`, correct only when it equals the stored string
  exactly (so a single id never satisfies a multi-correct question);
- a set-valued `selected_choices`, correct only when it equals the set of
  stored ids.

Scoring is binary: either the full points or zero.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple


@dataclass
class MCQGradingResult:
    question_id: str
    is_correct: bool
    score: int
    max_score: int


def split_correct_choices(correct_choice: Optional[str]) -> Set[str]:
    """Splits the stored comma-joined answer into its set of choice ids."""
    if not correct_choice:
        return set()
    return {c.strip() for c in correct_choice.split(",") if c.strip()}


def is_mcq_answer_correct(correct_choice: Optional[str], selected_choice: Optional[str] = None,
                          selected_choices: Optional[Iterable[str]] = None) -> bool:
    if not correct_choice:
        return False
    if selected_choices is not None:
        submitted = {str(c).strip() for c in selected_choices if str(c).strip()}
        return bool(submitted) and submitted == split_correct_choices(correct_choice)
    if selected_choice is None or selected_choice == "":
        return False
    return selected_choice == correct_choice


def grade_mcq(question, selected_choice: Optional[str], selected_choices: Optional[Sequence[str]] = None) -> MCQGradingResult:
    is_correct = is_mcq_answer_correct(question.correct_choice, selected_choice, selected_choices)
    return MCQGradingResult(
        question_id=question.id,
        is_correct=is_correct,
        score=question.points if is_correct else 0,
        max_score=question.points,
    )


def grade_mcq_batch(questions, answers: dict) -> Tuple[List[MCQGradingResult], int, int]:
    """
    Grades every mcq question in `questions`. `answers` maps question id to the
    selected choice id.
    """
    results = []
    total_score = 0
    max_score = 0
    for question in questions:
        if question.type != "mcq":
            continue
        result = grade_mcq(question, answers.get(question.id))
        results.append(result)
        total_score += result.score
        max_score += result.max_score
    return results, total_score, max_score
