# /quizflow/services/grading/slider.py

import math
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from ...models.question_model import SliderConfig, parse_slider_config


@dataclass
class SliderGradingResult:
    question_id: str
    is_correct: bool
    score: int
    max_score: int
    student_value: Optional[float]
    correct_value: float
    tolerance: float


def coerce_slider_value(value: Any) -> Optional[float]:
    """Turns a raw slider answer into a float, or None when it is missing or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def is_within_tolerance(value: float, config: SliderConfig) -> bool:
    # Inclusive on both ends. Decimal steps like 0.4 - 0.3 land a hair above the tolerance.
    diff = abs(value - config.correct_value)
    return diff <= config.tolerance or math.isclose(diff, config.tolerance, rel_tol=1e-9, abs_tol=1e-9)


def grade_slider(question, slider_value: Any) -> SliderGradingResult:
    config = parse_slider_config(question.slider_config)
    student_value = coerce_slider_value(slider_value)

    if config is None:
        return SliderGradingResult(question.id, False, 0, question.points, student_value, 0, 0)

    if student_value is None:
        return SliderGradingResult(question.id, False, 0, question.points, None,
                                   config.correct_value, config.tolerance)

    is_correct = is_within_tolerance(student_value, config)
    return SliderGradingResult(
        question_id=question.id,
        is_correct=is_correct,
        score=question.points if is_correct else 0,
        max_score=question.points,
        student_value=student_value,
        correct_value=config.correct_value,
        tolerance=config.tolerance,
    )


def grade_slider_batch(questions, answers: dict) -> Tuple[List[SliderGradingResult], int, int]:
    results = []
    total_score = 0
    max_score = 0
    for question in questions:
        if question.type != "slider":
            continue
        result = grade_slider(question, answers.get(question.id))
        results.append(result)
        total_score += result.score
        max_score += result.max_score
    return results, total_score, max_score
