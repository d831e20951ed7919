# /quizflow/services/attempt_helpers/immediate_grading.py

"""
The synchronous half of grading an attempt.

Scores everything that can be scored without the judge and works out the
attempt's buckets:

- `mcq_score / mcq_total`: mcq and slider questions plus the mcq/slider flags
  of image-map questions.
- `open_total`: open questions plus the text flags of image-map questions;
  `open_score` is filled in by the background pass.
- `max_score`: sum of effective max points, survey questions excluded.

A question is "pending" when it still needs the judge; its answer row keeps
`score = None` until the background pass writes it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ...models.question_model import (
    QuestionType,
    effective_max_points,
    is_scorable,
    parse_image_map_config,
    question_type_of,
)
from ..grading.image_map import grade_image_map_immediate
from ..grading.mcq import grade_mcq
from ..grading.slider import grade_slider


@dataclass
class ImmediateGrading:
    answer_fields: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    pending_question_ids: List[str] = field(default_factory=list)
    mcq_score: int = 0
    mcq_total: int = 0
    open_total: int = 0
    max_score: int = 0

    @property
    def has_pending(self) -> bool:
        return bool(self.pending_question_ids)

    def attempt_totals(self) -> Dict[str, int]:
        """Attempt columns as they stand before any AI grading."""
        return {
            "mcq_score": self.mcq_score,
            "mcq_total": self.mcq_total,
            "open_score": 0,
            "open_total": self.open_total,
            "total_score": self.mcq_score,
            "max_score": self.max_score,
            "grading_progress": 0,
            "grading_total": len(self.pending_question_ids),
        }


def needs_ai_grading(question) -> bool:
    """Open questions and image-map questions with at least one text flag go to the judge."""
    if not is_scorable(question):
        return False
    question_type = question_type_of(question)
    if question_type is QuestionType.OPEN:
        return True
    if question_type is QuestionType.IMAGE_MAP:
        config = parse_image_map_config(question.image_map_config)
        return bool(config) and any(flag.answer_type == "text" for flag in config.flags)
    return False


def grade_immediately(questions, raw_answers: Dict[str, Dict[str, Any]]) -> ImmediateGrading:
    """
    Grades every question in `questions` (in order) against `raw_answers`,
    which maps question id to the row-shaped raw answer.
    """
    grading = ImmediateGrading()

    for question in questions:
        raw = raw_answers.get(question.id) or {}
        if not is_scorable(question):
            grading.answer_fields[question.id] = {"score": None, "is_correct": None}
            continue

        points = effective_max_points(question)
        grading.max_score += points
        question_type = question_type_of(question)

        if question_type is QuestionType.MCQ:
            result = grade_mcq(question, raw.get("selected_choice"), raw.get("selected_choices"))
            grading.answer_fields[question.id] = {"score": result.score, "is_correct": result.is_correct}
            grading.mcq_score += result.score
            grading.mcq_total += points

        elif question_type is QuestionType.SLIDER:
            result = grade_slider(question, raw.get("slider_value"))
            grading.answer_fields[question.id] = {"score": result.score, "is_correct": result.is_correct}
            grading.mcq_score += result.score
            grading.mcq_total += points

        elif question_type is QuestionType.OPEN:
            grading.answer_fields[question.id] = {"score": None, "is_correct": None}
            grading.open_total += points
            grading.pending_question_ids.append(question.id)

        elif question_type is QuestionType.IMAGE_MAP:
            result = grade_image_map_immediate(question, raw.get("image_map_answers"))
            flag_results = [fr.to_dict() for fr in result.flag_results]
            grading.mcq_score += result.immediate_score
            grading.mcq_total += points - result.pending_max_score
            grading.open_total += result.pending_max_score
            if result.has_pending:
                grading.answer_fields[question.id] = {"score": None, "is_correct": None, "flag_results": flag_results}
                grading.pending_question_ids.append(question.id)
            else:
                grading.answer_fields[question.id] = {
                    "score": result.immediate_score,
                    "is_correct": points > 0 and result.immediate_score == points,
                    "flag_results": flag_results,
                }

        else:
            # Unknown question types are worth their points but can never be answered correctly.
            grading.answer_fields[question.id] = {"score": 0, "is_correct": False}
            grading.mcq_total += points

    return grading
