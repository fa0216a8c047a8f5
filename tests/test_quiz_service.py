from datetime import datetime, timezone

import pytest

from services.quizzes.QuizService import QuizService
from shared.errors.exceptions import InputValidationError, RecordInvalidError
from shared.models.user import QuizScore, UserProfile


@pytest.fixture
def quiz_service(helper_config):
    return QuizService(helper_config=helper_config, organization_id="org-a")


def test_quizzes_are_scoped_to_organization(quiz_service):
    quizzes = quiz_service.get_quizzes()

    assert [quiz.id for quiz in quizzes] == ["quiz1", "quiz2", "quiz3"]
    assert all(quiz.organization_id == "org-a" for quiz in quizzes)
    handling = quiz_service.get_quiz("quiz1")
    assert handling.title == "Mice Handling Procedures"
    assert handling.passing_score == 80
    assert handling.time_limit == 15
    assert len(handling.questions) == 2


def test_no_quizzes_without_organization(helper_config):
    assert QuizService(helper_config=helper_config, organization_id=None).get_quizzes() == []


def test_grading_all_correct_passes(quiz_service):
    attempt = quiz_service.do_grade_attempt("quiz1", {"q1": 1, "q2": 2}, user_id="user-1")

    assert attempt.score == 100
    assert attempt.passed is True
    assert attempt.user_id == "user-1"
    assert all(answer.is_correct for answer in attempt.answers)


def test_grading_half_correct_fails_below_passing_score(quiz_service):
    attempt = quiz_service.do_grade_attempt("quiz1", {"q1": 1, "q2": 0})

    assert attempt.score == 50
    assert attempt.passed is False


def test_unanswered_questions_count_as_wrong(quiz_service):
    attempt = quiz_service.do_grade_attempt("quiz1", {"q1": 1})

    assert attempt.score == 50
    assert len(attempt.answers) == 1


def test_grading_rejects_unknown_quiz_question_or_option(quiz_service):
    with pytest.raises(RecordInvalidError):
        quiz_service.do_grade_attempt("quiz9", {})
    with pytest.raises(InputValidationError):
        quiz_service.do_grade_attempt("quiz2", {"q7": 0})
    with pytest.raises(InputValidationError):
        quiz_service.do_grade_attempt("quiz2", {"q1": 4})


def test_required_training_excludes_passed_quizzes(quiz_service):
    profile = UserProfile(
        id="user-1", organization_id="org-a",
        quiz_scores=[
            QuizScore(quiz_id="quiz1", score=100, passed=True),
            QuizScore(quiz_id="quiz3", score=40, passed=False),
        ],
    )

    assert [quiz.id for quiz in quiz_service.get_required_training(profile)] == ["quiz3"]
    assert [quiz.id for quiz in quiz_service.get_required_training(None)] == ["quiz1", "quiz3"]


def test_completed_lists_newest_first(quiz_service):
    profile = UserProfile(
        id="user-1", organization_id="org-a",
        quiz_scores=[
            QuizScore(quiz_id="quiz2", score=100, passed=True, completed_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            QuizScore(quiz_id="gone", score=20, passed=False, completed_at=datetime(2024, 2, 1, tzinfo=timezone.utc)),
        ],
    )

    completed = quiz_service.get_completed(profile)

    assert [entry.quiz_id for entry in completed] == ["gone", "quiz2"]
    assert completed[0].title is None
    assert completed[1].title == "Equipment Sterilization"
    assert quiz_service.get_completed(None) == []
