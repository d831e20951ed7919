# /quizflow/services/attempt_helpers/grading_pipeline.py

"""
Per-item AI grading used by the background pass. Each function grades one
pending answer and returns the answer-row fields to persist together with the
points it adds to the attempt's `open_score`.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from ...core.config import (
    AI_FLAG_INTER_CALL_DELAY_SECONDS,
    AI_GRADING_MAX_RETRIES,
    AI_GRADING_RETRY_DELAY_SECONDS,
)
from ...models.question_model import QuestionType, question_type_of
from ..grading.image_map import grade_image_map_complete
from ..grading.open_answer import FALLBACK_FEEDBACK, grade_with_retry

UNFINISHED_GRADING_ERROR = "AI grading did not complete for this answer."


def _now():
    return datetime.now(timezone.utc)


async def grade_pending_open_answer(judge, question, answer_row,
                                    retries: int = AI_GRADING_MAX_RETRIES,
                                    retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS) -> Tuple[Dict[str, Any], int]:
    answer_text = answer_row.answer_text if answer_row is not None else None
    result = await grade_with_retry(judge, question, answer_text, retries=retries, retry_delay=retry_delay)
    fields = {
        "score": result.score,
        "ai_feedback": result.feedback,
        "ai_graded_at": _now(),
        "grading_error": result.error,
    }
    return fields, result.score


async def grade_pending_image_map(judge, question, answer_row,
                                  flag_delay: float = AI_FLAG_INTER_CALL_DELAY_SECONDS,
                                  retries: int = AI_GRADING_MAX_RETRIES,
                                  retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS) -> Tuple[Dict[str, Any], int]:
    """
    Re-runs the deterministic flags and grades the text flags. The answer's
    score is the whole question's; only the text-flag points count towards
    `open_score` since the rest was already counted in `mcq_score`.
    """
    answers = answer_row.image_map_answers if answer_row is not None else None
    result = await grade_image_map_complete(judge, question, answers, inter_call_delay=flag_delay,
                                            retries=retries, retry_delay=retry_delay)
    errors = [f"{fr.flag_id}: {fr.error}" for fr in result.flag_results if fr.error]
    fields = {
        "score": result.total_score,
        "is_correct": bool(result.flag_results) and all(fr.is_correct for fr in result.flag_results),
        "flag_results": [fr.to_dict() for fr in result.flag_results],
        "ai_feedback": f"Scored {result.total_score}/{result.max_score} across {len(result.flag_results)} flags.",
        "ai_graded_at": _now(),
        "grading_error": "; ".join(errors) or None,
    }
    return fields, result.pending_score


async def grade_pending_answer(judge, question, answer_row, flag_delay: float = AI_FLAG_INTER_CALL_DELAY_SECONDS,
                               retries: int = AI_GRADING_MAX_RETRIES,
                               retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS) -> Tuple[Dict[str, Any], int]:
    if question_type_of(question) is QuestionType.IMAGE_MAP:
        return await grade_pending_image_map(judge, question, answer_row, flag_delay=flag_delay,
                                             retries=retries, retry_delay=retry_delay)
    return await grade_pending_open_answer(judge, question, answer_row, retries=retries, retry_delay=retry_delay)


def failed_item_fields(error: Exception) -> Dict[str, Any]:
    """Fields written for an item whose grading raised instead of returning a result."""
    return {
        "score": 0,
        "ai_feedback": FALLBACK_FEEDBACK,
        "ai_graded_at": _now(),
        "grading_error": str(error) or error.__class__.__name__,
    }


def unfinished_item_fields() -> Dict[str, Any]:
    """Fields written onto pending answers that are still unscored when the pass finalizes."""
    return {
        "score": 0,
        "ai_feedback": FALLBACK_FEEDBACK,
        "ai_graded_at": _now(),
        "grading_error": UNFINISHED_GRADING_ERROR,
    }
