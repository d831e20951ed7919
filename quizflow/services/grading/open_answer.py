# /quizflow/services/grading/open_answer.py

"""
AI grading of free-text answers.

The judge is asked for a strict JSON object `{score, feedback}` on a 0-10
scale. Anything other than a well-formed, in-range score is a grading
failure. Failures are never raised to the caller: they come back as a
zero-score result whose `error` field is set, which is also the only kind of
result the retry wrapper retries.
"""

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ...core.config import (
    AI_GRADING_MAX_RETRIES,
    AI_GRADING_RETRY_DELAY_SECONDS,
    AI_GRADING_INTER_CALL_DELAY_SECONDS,
)
from ...core.exceptions import GradingError
from ...core.logging_config import truncate_for_log
from .. import prompt_library

logger = logging.getLogger(__name__)

JUDGE_SCALE = 10
NO_ANSWER_FEEDBACK = "No answer was provided."
FALLBACK_FEEDBACK = "Unable to grade this answer automatically. Please review manually."


@dataclass
class OpenAnswerGradingResult:
    question_id: str
    score: int
    max_score: int
    feedback: str
    error: Optional[str] = None


@dataclass
class OpenAnswerBatchResult:
    results: List[OpenAnswerGradingResult] = field(default_factory=list)
    total_score: int = 0
    max_score: int = 0
    failed_count: int = 0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_score(raw_score: float, points: int) -> int:
    """Rescales a 0-10 judge score onto the question's points."""
    return round_half_up(raw_score * points / JUDGE_SCALE)


def default_feedback(raw_score: float) -> str:
    if raw_score >= 7:
        return "Good answer!"
    if raw_score >= 4:
        return "Partially correct answer."
    return "Answer needs improvement."


def parse_judge_response(content: Optional[str]) -> Tuple[float, Optional[str]]:
    """
    Parses and validates the judge's raw completion.
    Returns `(score, feedback)`; feedback is None when the judge omitted it.
    """
    if not content or not content.strip():
        raise GradingError("The judge returned an empty response", GradingError.EMPTY_RESPONSE)

    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise GradingError(f"Failed to parse judge response as JSON: {truncate_for_log(content)}",
                           GradingError.PARSE_ERROR, e)

    if not isinstance(payload, dict):
        raise GradingError("Judge response is not a JSON object", GradingError.PARSE_ERROR)

    score = payload.get("score")
    # bool is an int subclass; `true` is not a score.
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score) \
            or score < 0 or score > JUDGE_SCALE:
        raise GradingError(f"Invalid score received: {score!r}. Expected number between 0-10.",
                           GradingError.VALIDATION_ERROR)

    feedback = payload.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        feedback = None
    return float(score), feedback


async def invoke_judge(judge, system_prompt: str, user_prompt: str) -> Tuple[float, Optional[str]]:
    """Calls the judge exactly once and returns the validated `(score, feedback)` pair."""
    try:
        content = await judge.complete_json(system_prompt, user_prompt)
    except GradingError:
        raise
    except Exception as e:
        raise GradingError(str(e) or e.__class__.__name__, GradingError.API_ERROR, e)
    return parse_judge_response(content)


def build_open_answer_prompts(question, student_answer: str) -> Tuple[str, str]:
    rubric_section = ""
    if question.rubric:
        rubric_section = prompt_library.OPEN_ANSWER_RUBRIC_SECTION.format(rubric=question.rubric)
    reference_section = ""
    if question.reference_answer:
        reference_section = prompt_library.OPEN_ANSWER_REFERENCE_SECTION.format(
            reference_answer=question.reference_answer)

    system_prompt = prompt_library.OPEN_ANSWER_SYSTEM_PROMPT.format(
        rubric_section=rubric_section, reference_section=reference_section)
    user_prompt = prompt_library.OPEN_ANSWER_USER_PROMPT.format(
        question_prompt=question.prompt or "", student_answer=student_answer)
    return system_prompt, user_prompt


def log_grading_failure(context: str, item_id: str, student_answer: str, error: Exception):
    code = getattr(error, "code", GradingError.API_ERROR)
    logger.error("[%s] %s grading %s: %s (answer=%r)", context, code, item_id, error,
                 truncate_for_log(student_answer))


async def grade_open_answer(judge, question, student_answer: Optional[str]) -> OpenAnswerGradingResult:
    trimmed = (student_answer or "").strip()
    if not trimmed:
        return OpenAnswerGradingResult(question.id, 0, question.points, NO_ANSWER_FEEDBACK)

    system_prompt, user_prompt = build_open_answer_prompts(question, trimmed)
    try:
        raw_score, feedback = await invoke_judge(judge, system_prompt, user_prompt)
    except GradingError as e:
        log_grading_failure("Grading Error", f"question {question.id}", trimmed, e)
        return OpenAnswerGradingResult(question.id, 0, question.points, FALLBACK_FEEDBACK, error=str(e))

    return OpenAnswerGradingResult(
        question_id=question.id,
        score=normalize_score(raw_score, question.points),
        max_score=question.points,
        feedback=feedback or default_feedback(raw_score),
    )


async def grade_with_retry(judge, question, student_answer: Optional[str],
                           retries: int = AI_GRADING_MAX_RETRIES,
                           retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS) -> OpenAnswerGradingResult:
    """
    Grades an open answer, retrying a bounded number of times when the result
    is a failure. A well-formed low score is final.
    """
    result = await grade_open_answer(judge, question, student_answer)
    while result.error and retries > 0:
        logger.info("[Grading] Retrying question %s, %d retries left", question.id, retries)
        await asyncio.sleep(retry_delay)
        retries -= 1
        result = await grade_open_answer(judge, question, student_answer)
    return result


async def grade_open_answers_batch(judge, questions, answers: Dict[str, Optional[str]],
                                   inter_call_delay: float = AI_GRADING_INTER_CALL_DELAY_SECONDS,
                                   retries: int = AI_GRADING_MAX_RETRIES,
                                   retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS) -> OpenAnswerBatchResult:
    """
    Grades every open question in order, one judge call at a time. `answers`
    maps question id to the student's text.
    """
    batch = OpenAnswerBatchResult()
    open_questions = [q for q in questions if q.type == "open"]

    for index, question in enumerate(open_questions):
        if index > 0 and inter_call_delay:
            await asyncio.sleep(inter_call_delay)
        result = await grade_with_retry(judge, question, answers.get(question.id),
                                        retries=retries, retry_delay=retry_delay)
        batch.results.append(result)
        batch.total_score += result.score
        batch.max_score += result.max_score
        if result.error:
            batch.failed_count += 1

    if batch.failed_count:
        logger.warning("[Grading] %d/%d questions failed to grade automatically",
                       batch.failed_count, len(batch.results))
    return batch
