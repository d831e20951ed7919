# /quizflow/models/question_model.py

"""
Typed scoring configuration for the four question variants.

Question rows store their configuration as free-form JSON. These models are
the validation boundary: graders call `parse_slider_config` /
`parse_image_map_config` and receive either a validated record or `None`.
A malformed blob is treated as "no config" and scores 0; it never raises.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


# --- Core Enumerations ---
class QuestionType(str, Enum):
    MCQ = "mcq"; OPEN = "open"; SLIDER = "slider"; IMAGE_MAP = "image_map"


class FlagAnswerType(str, Enum):
    TEXT = "text"; MCQ = "mcq"; SLIDER = "slider"


# --- Configuration Records ---

class ChoiceOption(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    text: str = ""


class SliderConfig(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    min: float = 0
    max: float = 100
    step: float = Field(default=1, gt=0)
    correct_value: float
    tolerance: float = Field(default=0, ge=0)


class ImageMapFlag(BaseModel):
    """
    One independently scored location on an image-map question. The flag's
    own slider configuration stays a raw dict and is validated when that flag
    is graded, so one broken flag does not void its siblings.
    """
    model_config = ConfigDict(from_attributes=True)
    id: str = Field(..., min_length=1)
    x: float = 0
    y: float = 0
    label: str = ""
    answer_type: Literal["text", "mcq", "slider"]
    correct_answer: Optional[str] = ""
    choices: Optional[List[ChoiceOption]] = None
    slider_config: Optional[Dict[str, Any]] = None
    reference_answer: Optional[str] = None
    points: int = Field(default=1, ge=0)


class ImageMapConfig(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    base_image_url: str = ""
    flags: List[ImageMapFlag] = Field(default_factory=list)


# --- Boundary Parsers (fail closed) ---

def parse_slider_config(raw: Any) -> Optional[SliderConfig]:
    """Validates a raw slider configuration, returning None when it is unusable."""
    if raw is None:
        return None
    if isinstance(raw, SliderConfig):
        return raw
    try:
        return SliderConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning("Ignoring malformed slider config: %s", e.errors()[:1])
        return None


def parse_image_map_config(raw: Any) -> Optional[ImageMapConfig]:
    """Validates a raw image-map configuration, returning None when it is unusable."""
    if raw is None:
        return None
    if isinstance(raw, ImageMapConfig):
        return raw
    try:
        return ImageMapConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning("Ignoring malformed image-map config: %s", e.errors()[:1])
        return None


def question_type_of(question) -> Optional[QuestionType]:
    """Returns the question's type as an enum member, or None for unknown types."""
    try:
        return QuestionType(question.type)
    except ValueError:
        return None


def is_scorable(question) -> bool:
    """Survey questions (`has_correct_answer = false`) are never auto-scored."""
    return getattr(question, "has_correct_answer", True) is not False


def effective_max_points(question) -> int:
    """
    The points a question contributes to an attempt's maximum.

    Image-map questions with a usable configuration are worth the sum of their
    flags; every other question is worth its `points`. Survey questions are
    worth nothing.
    """
    if not is_scorable(question):
        return 0
    if question_type_of(question) is QuestionType.IMAGE_MAP:
        config = parse_image_map_config(question.image_map_config)
        if config and config.flags:
            return sum(flag.points for flag in config.flags)
    return question.points or 0
