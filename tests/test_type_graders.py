# /tests/test_type_graders.py

import pytest
from types import SimpleNamespace

from quizflow.services.grading.mcq import grade_mcq, grade_mcq_batch, split_correct_choices
from quizflow.services.grading.slider import grade_slider, grade_slider_batch, coerce_slider_value
from quizflow.services.grading.image_map import grade_image_map_immediate, PENDING_FEEDBACK
from quizflow.models.question_model import effective_max_points, parse_slider_config


def mcq_question(correct_choice="b", points=3, qid="q1"):
    return SimpleNamespace(id=qid, type="mcq", points=points, correct_choice=correct_choice, has_correct_answer=True)


def slider_question(config, points=2, qid="s1"):
    return SimpleNamespace(id=qid, type="slider", points=points, slider_config=config, has_correct_answer=True)


@pytest.fixture
def image_map_question():
    return SimpleNamespace(
        id="im1", type="image_map", points=1, prompt="Label the cell", has_correct_answer=True,
        image_map_config={
            "base_image_url": "https://example.com/cell.png",
            "flags": [
                {"id": "f_mcq", "label": "Organelle", "answer_type": "mcq", "correct_answer": "nucleus", "points": 2},
                {"id": "f_slider", "label": "Size", "answer_type": "slider", "points": 1,
                 "slider_config": {"min": 0, "max": 10, "correct_value": 5, "tolerance": 1}},
                {"id": "f_text", "label": "Function", "answer_type": "text", "correct_answer": "stores DNA", "points": 3},
            ],
        },
    )


# --- MCQ ---

@pytest.mark.parametrize("selected", ["a", "b", "c", None, ""])
def test_mcq_score_is_binary(selected):
    result = grade_mcq(mcq_question(), selected)
    assert result.score in (0, 3)
    assert result.is_correct == (result.score == result.max_score)


def test_mcq_correct_and_incorrect():
    assert grade_mcq(mcq_question(), "b").score == 3
    assert grade_mcq(mcq_question(), "a").is_correct is False


def test_mcq_no_answer_scores_zero():
    result = grade_mcq(mcq_question(), None)
    assert result.is_correct is False
    assert result.score == 0


def test_multi_correct_single_selection_is_not_accepted():
    """
    A multi-correct question stores "a,c". Picking one of the right options is
    NOT full credit: a scalar selection must equal the stored value exactly.
    This is deliberately stricter than accepting any member of the set.
    """
    question = mcq_question(correct_choice="a,c")
    assert grade_mcq(question, "a").is_correct is False
    assert grade_mcq(question, "c").is_correct is False


def test_multi_correct_requires_set_equality_for_set_submissions():
    question = mcq_question(correct_choice="a,c")
    assert grade_mcq(question, None, ["c", "a"]).is_correct is True
    assert grade_mcq(question, None, ["a"]).is_correct is False
    assert grade_mcq(question, None, ["a", "b", "c"]).is_correct is False
    assert grade_mcq(question, None, []).is_correct is False


def test_split_correct_choices_ignores_blanks():
    assert split_correct_choices(" a, c ,,") == {"a", "c"}
    assert split_correct_choices(None) == set()


def test_grade_mcq_batch_skips_other_types():
    questions = [mcq_question(qid="q1"), mcq_question(qid="q2", correct_choice="a"),
                 SimpleNamespace(id="o1", type="open", points=5)]
    results, total, maximum = grade_mcq_batch(questions, {"q1": "b", "q2": "b"})
    assert len(results) == 2
    assert (total, maximum) == (3, 6)


# --- Slider ---

@pytest.mark.parametrize("value, expected", [
    (9.5, True),    # correct - tolerance, inclusive
    (10.5, True),   # correct + tolerance, inclusive
    (10, True),
    (9.49, False),
    (10.51, False),
])
def test_slider_tolerance_boundaries(value, expected):
    question = slider_question({"min": 0, "max": 20, "correct_value": 10, "tolerance": 0.5})
    result = grade_slider(question, value)
    assert result.is_correct is expected
    assert result.score == (2 if expected else 0)


@pytest.mark.parametrize("correct, tolerance, value", [
    (0.3, 0.1, 0.4),
    (1.1, 0.1, 1.0),
    (0.7, 0.1, 0.8),
    (0.3, 0.1, 0.2),
])
def test_slider_decimal_boundaries_are_inclusive(correct, tolerance, value):
    question = slider_question({"min": 0, "max": 2, "step": 0.1, "correct_value": correct, "tolerance": tolerance})
    assert grade_slider(question, value).is_correct is True


def test_slider_just_outside_decimal_boundary():
    question = slider_question({"min": 0, "max": 2, "step": 0.01, "correct_value": 0.3, "tolerance": 0.1})
    assert grade_slider(question, 0.41).is_correct is False


@pytest.mark.parametrize("value", [None, "", "abc", True, float("nan")])
def test_slider_unusable_answers_score_zero(value):
    question = slider_question({"correct_value": 10, "tolerance": 1})
    result = grade_slider(question, value)
    assert result.is_correct is False
    assert result.score == 0


def test_slider_accepts_numeric_strings():
    question = slider_question({"correct_value": 10, "tolerance": 1})
    assert grade_slider(question, " 10.5 ").is_correct is True
    assert coerce_slider_value("7") == 7.0


@pytest.mark.parametrize("config", [None, {"tolerance": 1}, {"correct_value": "ten"}, "not a dict",
                                    {"correct_value": 3, "tolerance": -1}])
def test_slider_malformed_config_fails_closed(config):
    question = slider_question(config)
    result = grade_slider(question, 3)
    assert result.score == 0
    assert parse_slider_config(config) is None


def test_grade_slider_batch_totals():
    questions = [slider_question({"correct_value": 5, "tolerance": 0}, qid="s1"),
                 slider_question({"correct_value": 5, "tolerance": 0}, qid="s2")]
    _, total, maximum = grade_slider_batch(questions, {"s1": 5, "s2": 6})
    assert (total, maximum) == (2, 4)


# --- Image map (immediate portion) ---

def test_image_map_immediate_scores_mcq_and_slider_flags(image_map_question):
    result = grade_image_map_immediate(image_map_question, {"f_mcq": "nucleus", "f_slider": 5.5, "f_text": "holds DNA"})

    assert result.immediate_score == 3
    assert result.immediate_max_score == 3
    assert result.pending_max_score == 3
    assert result.max_score == 6
    assert result.has_pending is True

    text_flag = next(fr for fr in result.flag_results if fr.flag_id == "f_text")
    assert text_flag.needs_ai_grading is True
    assert text_flag.feedback == PENDING_FEEDBACK


def test_image_map_immediate_wrong_answers(image_map_question):
    result = grade_image_map_immediate(image_map_question, {"f_mcq": "ribosome", "f_slider": "lots"})
    by_id = {fr.flag_id: fr for fr in result.flag_results}

    assert result.immediate_score == 0
    assert by_id["f_mcq"].feedback == "Incorrect. The correct answer was: nucleus"
    assert by_id["f_slider"].feedback == "Invalid numeric answer"


def test_image_map_slider_flag_decimal_boundary(image_map_question):
    image_map_question.image_map_config["flags"][1]["slider_config"] = {
        "min": 0, "max": 1, "step": 0.1, "correct_value": 0.3, "tolerance": 0.1,
    }
    result = grade_image_map_immediate(image_map_question, {"f_slider": 0.4})
    slider_flag = next(fr for fr in result.flag_results if fr.flag_id == "f_slider")
    assert slider_flag.is_correct is True
    assert slider_flag.score == 1


def test_image_map_without_config_scores_zero():
    question = SimpleNamespace(id="im2", type="image_map", points=4, prompt="", image_map_config={"flags": "bad"},
                               has_correct_answer=True)
    result = grade_image_map_immediate(question, {"x": "y"})
    assert result.flag_results == []
    assert result.total_score == 0
    assert result.max_score == 4


def test_effective_max_points(image_map_question):
    assert effective_max_points(image_map_question) == 6
    assert effective_max_points(mcq_question(points=3)) == 3
    survey = SimpleNamespace(id="sv", type="mcq", points=5, has_correct_answer=False)
    assert effective_max_points(survey) == 0
