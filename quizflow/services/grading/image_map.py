# /quizflow/services/grading/image_map.py

"""
Grading for image-map questions.

An image-map question decomposes into flags, each graded on its own:
mcq and slider flags are scored immediately at submission time, text flags
are deferred to the AI judge. The immediate pass tracks the text flags'
points as `pending_max_score` so the attempt's totals stay consistent once
AI grading fills them in.
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...core.config import (
    AI_FLAG_INTER_CALL_DELAY_SECONDS,
    AI_GRADING_MAX_RETRIES,
    AI_GRADING_RETRY_DELAY_SECONDS,
)
from ...core.exceptions import GradingError
from ...models.question_model import ImageMapFlag, parse_image_map_config, parse_slider_config
from .. import prompt_library
from .mcq import is_mcq_answer_correct
from .open_answer import (
    FALLBACK_FEEDBACK,
    NO_ANSWER_FEEDBACK,
    invoke_judge,
    log_grading_failure,
    normalize_score,
)
from .slider import coerce_slider_value, is_within_tolerance

logger = logging.getLogger(__name__)

PENDING_FEEDBACK = "Pending AI grading..."
# A text flag counts as correct from 70% of its points upwards.
TEXT_FLAG_CORRECT_RATIO = 0.7


@dataclass
class ImageMapFlagResult:
    flag_id: str
    flag_label: str
    is_correct: bool
    score: int
    max_score: int
    feedback: Optional[str] = None
    needs_ai_grading: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class ImageMapGradingResult:
    question_id: str
    flag_results: List[ImageMapFlagResult] = field(default_factory=list)
    immediate_score: int = 0
    immediate_max_score: int = 0
    pending_score: int = 0
    pending_max_score: int = 0
    total_score: int = 0
    max_score: int = 0

    @property
    def has_pending(self) -> bool:
        return any(fr.needs_ai_grading for fr in self.flag_results)


def _flag_answer(answers: Optional[Dict[str, Any]], flag_id: str):
    if not answers:
        return None
    return answers.get(flag_id)


def grade_mcq_flag(flag: ImageMapFlag, answer) -> ImageMapFlagResult:
    if isinstance(answer, (list, tuple, set)):
        is_correct = is_mcq_answer_correct(flag.correct_answer, selected_choices=answer)
    else:
        is_correct = is_mcq_answer_correct(flag.correct_answer, None if answer is None else str(answer))

    return ImageMapFlagResult(
        flag_id=flag.id,
        flag_label=flag.label,
        is_correct=is_correct,
        score=flag.points if is_correct else 0,
        max_score=flag.points,
        feedback="Correct!" if is_correct else f"Incorrect. The correct answer was: {flag.correct_answer}",
    )


def grade_slider_flag(flag: ImageMapFlag, answer) -> ImageMapFlagResult:
    config = parse_slider_config(flag.slider_config)
    if config is None:
        return ImageMapFlagResult(flag.id, flag.label, False, 0, flag.points,
                                  feedback="Slider configuration missing", error="No slider config")

    if answer is None or answer == "":
        return ImageMapFlagResult(flag.id, flag.label, False, 0, flag.points, feedback="No answer provided")

    student_value = coerce_slider_value(answer)
    if student_value is None:
        return ImageMapFlagResult(flag.id, flag.label, False, 0, flag.points, feedback="Invalid numeric answer")

    is_correct = is_within_tolerance(student_value, config)
    feedback = "Correct!" if is_correct else (
        f"Incorrect. Your answer: {student_value:g}. "
        f"Correct value: {config.correct_value:g} (±{config.tolerance:g})"
    )
    return ImageMapFlagResult(flag.id, flag.label, is_correct, flag.points if is_correct else 0,
                              flag.points, feedback=feedback)


def grade_image_map_immediate(question, answers: Optional[Dict[str, Any]]) -> ImageMapGradingResult:
    """Grades the mcq and slider flags and marks text flags as pending."""
    config = parse_image_map_config(question.image_map_config)
    if config is None:
        return ImageMapGradingResult(question_id=question.id, max_score=question.points)

    result = ImageMapGradingResult(question_id=question.id)
    for flag in config.flags:
        answer = _flag_answer(answers, flag.id)

        if flag.answer_type == "mcq":
            flag_result = grade_mcq_flag(flag, answer)
        elif flag.answer_type == "slider":
            flag_result = grade_slider_flag(flag, answer)
        else:
            result.flag_results.append(ImageMapFlagResult(
                flag.id, flag.label, False, 0, flag.points,
                feedback=PENDING_FEEDBACK, needs_ai_grading=True,
            ))
            result.pending_max_score += flag.points
            continue

        result.flag_results.append(flag_result)
        result.immediate_score += flag_result.score
        result.immediate_max_score += flag_result.max_score

    result.total_score = result.immediate_score
    result.max_score = result.immediate_max_score + result.pending_max_score
    return result


async def grade_text_flag(judge, flag: ImageMapFlag, answer, question_prompt: str) -> ImageMapFlagResult:
    """Grades one text flag with the judge, substituting the flag's own expected answers."""
    trimmed = str(answer).strip() if answer is not None else ""
    if not trimmed:
        return ImageMapFlagResult(flag.id, flag.label, False, 0, flag.points, feedback=NO_ANSWER_FEEDBACK)

    expected_section = f"\nExpected answer: {flag.correct_answer}" if flag.correct_answer else ""
    reference_section = f"\nReference answer for comparison: {flag.reference_answer}\n" if flag.reference_answer else "\n"
    system_prompt = prompt_library.IMAGE_MAP_FLAG_SYSTEM_PROMPT.format(
        flag_label=flag.label, question_prompt=question_prompt or "",
        expected_section=expected_section, reference_section=reference_section,
    )
    user_prompt = prompt_library.IMAGE_MAP_FLAG_USER_PROMPT.format(flag_label=flag.label, student_answer=trimmed)

    try:
        raw_score, feedback = await invoke_judge(judge, system_prompt, user_prompt)
    except GradingError as e:
        log_grading_failure("ImageMap Grading", f"flag {flag.id}", trimmed, e)
        return ImageMapFlagResult(flag.id, flag.label, False, 0, flag.points,
                                  feedback=FALLBACK_FEEDBACK, error=str(e))

    score = normalize_score(raw_score, flag.points)
    is_correct = score >= flag.points * TEXT_FLAG_CORRECT_RATIO
    return ImageMapFlagResult(
        flag_id=flag.id,
        flag_label=flag.label,
        is_correct=is_correct,
        score=score,
        max_score=flag.points,
        feedback=feedback or ("Good answer!" if is_correct else "Answer needs improvement."),
    )


async def grade_text_flag_with_retry(judge, flag: ImageMapFlag, answer, question_prompt: str,
                                     retries: int = AI_GRADING_MAX_RETRIES,
                                     retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS) -> ImageMapFlagResult:
    result = await grade_text_flag(judge, flag, answer, question_prompt)
    while result.error and retries > 0:
        logger.info("[ImageMap Grading] Retrying flag %s, %d retries left", flag.id, retries)
        await asyncio.sleep(retry_delay)
        retries -= 1
        result = await grade_text_flag(judge, flag, answer, question_prompt)
    return result


async def grade_image_map_text_flags(judge, question, answers: Optional[Dict[str, Any]],
                                     inter_call_delay: float = AI_FLAG_INTER_CALL_DELAY_SECONDS,
                                     retries: int = AI_GRADING_MAX_RETRIES,
                                     retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS) -> List[ImageMapFlagResult]:
    """Grades every text flag of the question in order, pausing between judge calls."""
    config = parse_image_map_config(question.image_map_config)
    if config is None:
        return []

    text_flags = [f for f in config.flags if f.answer_type == "text"]
    results = []
    for index, flag in enumerate(text_flags):
        results.append(await grade_text_flag_with_retry(
            judge, flag, _flag_answer(answers, flag.id), question.prompt,
            retries=retries, retry_delay=retry_delay,
        ))
        if index < len(text_flags) - 1 and inter_call_delay:
            await asyncio.sleep(inter_call_delay)
    return results


def merge_text_flag_results(immediate: ImageMapGradingResult,
                            text_results: List[ImageMapFlagResult]) -> ImageMapGradingResult:
    """Combines an immediate result with the AI results for its text flags."""
    by_id = {tr.flag_id: tr for tr in text_results}
    merged = [by_id.get(fr.flag_id, fr) if fr.needs_ai_grading else fr for fr in immediate.flag_results]
    pending_score = sum(tr.score for tr in text_results)
    return dataclasses.replace(
        immediate,
        flag_results=merged,
        pending_score=pending_score,
        total_score=immediate.immediate_score + pending_score,
    )


async def grade_image_map_complete(judge, question, answers: Optional[Dict[str, Any]],
                                   inter_call_delay: float = AI_FLAG_INTER_CALL_DELAY_SECONDS,
                                   retries: int = AI_GRADING_MAX_RETRIES,
                                   retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS) -> ImageMapGradingResult:
    immediate = grade_image_map_immediate(question, answers)
    if immediate.pending_max_score == 0 and not immediate.has_pending:
        return immediate

    text_results = await grade_image_map_text_flags(judge, question, answers, inter_call_delay=inter_call_delay,
                                                    retries=retries, retry_delay=retry_delay)
    return merge_text_flag_results(immediate, text_results)
