# /quizflow/services/attempt_helpers/answer_intake.py

"""
Turns submitted answers into answer rows.

Validation happens here, before anything is written: a submission that
references a question outside the assignment (or session), or answers the
same question twice, is rejected as a whole.
"""

import uuid
from typing import Any, Dict, List, Optional

from ...core.exceptions import InputValidationError
from ...models.attempt_model import AnswerSubmission
from ..grading.slider import coerce_slider_value

RAW_ANSWER_FIELDS = ("selected_choice", "selected_choices", "answer_text", "slider_value", "image_map_answers")


def empty_raw_answer() -> Dict[str, Any]:
    return {name: None for name in RAW_ANSWER_FIELDS}


def raw_answer_from_submission(submission: AnswerSubmission) -> Dict[str, Any]:
    """
    Maps the API payload onto answer-row columns. A slider value that is not a
    number is stored as missing; it scores 0 rather than failing the submission.
    """
    return {
        "selected_choice": submission.selectedChoice,
        "selected_choices": list(submission.selectedChoices) if submission.selectedChoices is not None else None,
        "answer_text": submission.answerText,
        "slider_value": coerce_slider_value(submission.sliderValue),
        "image_map_answers": dict(submission.imageMapAnswers) if submission.imageMapAnswers is not None else None,
    }


def raw_answer_from_row(row) -> Dict[str, Any]:
    return {name: getattr(row, name) for name in RAW_ANSWER_FIELDS}


def collect_submitted_answers(questions, submissions: List[AnswerSubmission]) -> Dict[str, Dict[str, Any]]:
    """
    Validates the submission against the questions in scope and returns the
    raw answer of every question, keyed by question id. Unanswered questions
    get an empty answer so each question has exactly one row.
    """
    known_ids = {q.id for q in questions}
    submitted: Dict[str, AnswerSubmission] = {}

    for submission in submissions:
        if submission.questionId in submitted:
            raise InputValidationError(f"Question {submission.questionId} was answered more than once.")
        if submission.questionId not in known_ids:
            raise InputValidationError(f"Question {submission.questionId} does not belong to this quiz.")
        submitted[submission.questionId] = submission

    return {
        q.id: raw_answer_from_submission(submitted[q.id]) if q.id in submitted else empty_raw_answer()
        for q in questions
    }


def build_answer_record(attempt_id: str, question_id: str, raw: Dict[str, Any],
                        graded_fields: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    record = {
        "id": f"ans_{uuid.uuid4().hex[:16]}",
        "attempt_id": attempt_id,
        "question_id": question_id,
        **raw,
    }
    if graded_fields:
        record.update(graded_fields)
    return record
