# /quizflow/services/attempt_helpers/data_assembly.py

from typing import Dict, List, Optional

from ..grading.level_calculator import calculate_percentage


def assemble_answer_results(questions, answers, show_ai_feedback: bool = True) -> List[Dict]:
    """
    Joins answer rows with their questions, in question order. Answers whose
    question no longer exists are dropped.
    """
    by_question = {a.question_id: a for a in answers}
    assembled = []
    for question in questions:
        answer = by_question.get(question.id)
        if answer is None:
            continue
        assembled.append({
            "questionId": question.id,
            "questionPrompt": question.prompt,
            "questionType": question.type,
            "points": question.points,
            "selectedChoice": answer.selected_choice,
            "selectedChoices": answer.selected_choices,
            "answerText": answer.answer_text,
            "sliderValue": answer.slider_value,
            "imageMapAnswers": answer.image_map_answers,
            "isCorrect": answer.is_correct,
            "score": answer.score,
            "aiFeedback": answer.ai_feedback if show_ai_feedback else None,
            "aiGradedAt": answer.ai_graded_at,
            "gradingError": answer.grading_error,
            "flagResults": answer.flag_results,
        })
    return assembled


def assemble_attempt_result(attempt, answer_results: List[Dict], redirect: Optional[Dict]) -> Dict:
    return {
        "attemptId": attempt.id,
        "assignmentId": attempt.assignment_id,
        "sessionId": attempt.session_id,
        "journeyId": attempt.journey_id,
        "studentName": attempt.student_name,
        "status": attempt.status,
        "isFinal": bool(attempt.is_final),
        "mcqScore": attempt.mcq_score,
        "mcqTotal": attempt.mcq_total,
        "openScore": attempt.open_score,
        "openTotal": attempt.open_total,
        "totalScore": attempt.total_score,
        "maxScore": attempt.max_score,
        "percentage": calculate_percentage(attempt.total_score, attempt.max_score),
        "level": attempt.level,
        "gradingProgress": attempt.grading_progress,
        "gradingTotal": attempt.grading_total,
        "submittedAt": attempt.submitted_at,
        "answers": answer_results,
        "redirect": redirect,
    }
