from datetime import datetime

from shared.errors.exceptions import InputValidationError, RecordInvalidError
from shared.helper.HelperConfig import HelperConfig
from shared.models.quiz import CompletedQuiz, Quiz, QuizAnswer, QuizAttempt, QuizQuestion
from shared.models.user import UserProfile
from services.quizzes.fixtures import QUIZ_FIXTURES


class QuizService:
    """Serves the built-in quizzes of one organization and grades attempts. Nothing is persisted."""

    def __init__(self, helper_config: HelperConfig, organization_id: str | None) -> None:
        self.logging = helper_config.get_logger()
        self._tz = helper_config.get_timezone()
        self._organization_id = organization_id
        self._quizzes = self._build_quizzes() if organization_id else []

    def _build_quizzes(self) -> list[Quiz]:
        now = datetime.now(self._tz)
        quizzes = []
        for fixture in QUIZ_FIXTURES:
            quizzes.append(Quiz(
                id=fixture["id"],
                title=fixture["title"],
                description=fixture["description"],
                category_id=fixture["category_id"],
                subcategory=fixture["subcategory"],
                organization_id=self._organization_id,
                passing_score=fixture["passing_score"],
                time_limit=fixture["time_limit"],
                is_required=fixture["is_required"],
                created_at=now - fixture["age"],
                created_by=fixture["created_by"],
                questions=[QuizQuestion(**question) for question in fixture["questions"]],
            ))
        return quizzes

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_quizzes(self) -> list[Quiz]:
        return list(self._quizzes)

    def get_quiz(self, quiz_id: str) -> Quiz:
        """
        Raises:
            RecordInvalidError: If the quiz does not exist.
        """
        for quiz in self._quizzes:
            if quiz.id == quiz_id:
                return quiz
        raise RecordInvalidError(quiz_id, "no such quiz")

    def get_required_training(self, profile: UserProfile | None) -> list[Quiz]:
        """Required quizzes the user has not passed yet."""
        passed = {score.quiz_id for score in (profile.quiz_scores if profile else []) if score.passed}
        return [quiz for quiz in self._quizzes if quiz.is_required and quiz.id not in passed]

    def get_completed(self, profile: UserProfile | None) -> list[CompletedQuiz]:
        """The user's recorded quiz scores, newest first."""
        if profile is None:
            return []
        titles = {quiz.id: quiz.title for quiz in self._quizzes}
        completed = [
            CompletedQuiz(
                quiz_id=score.quiz_id,
                title=titles.get(score.quiz_id),
                score=score.score,
                passed=score.passed,
                completed_at=score.completed_at,
            )
            for score in profile.quiz_scores
        ]
        return sorted(completed, key=lambda c: c.completed_at.timestamp() if c.completed_at else 0.0, reverse=True)

    ##########################################
    ################ GRADING #################
    ##########################################

    def do_grade_attempt(self, quiz_id: str, answers: dict[str, int], user_id: str | None = None, started_at: datetime | None = None) -> QuizAttempt:
        """
        Grades one attempt. Unanswered questions count as wrong.

        Args:
            quiz_id (str): The quiz being answered.
            answers (dict[str, int]): Selected option index per question id.

        Returns:
            QuizAttempt: Score in percent (rounded) and whether it reaches the passing score.

        Raises:
            RecordInvalidError: If the quiz does not exist.
            InputValidationError: If an answer refers to an unknown question or option.
        """
        quiz = self.get_quiz(quiz_id)
        questions = {question.id: question for question in quiz.questions}
        for question_id, index in answers.items():
            if question_id not in questions:
                raise InputValidationError(f"Quiz '{quiz_id}' has no question '{question_id}'.")
            if not 0 <= index < len(questions[question_id].options):
                raise InputValidationError(f"Option {index} does not exist for question '{question_id}'.")

        graded = [
            QuizAnswer(
                question_id=question.id,
                selected_answer_index=answers[question.id],
                is_correct=answers[question.id] == question.correct_answer_index,
            )
            for question in quiz.questions
            if question.id in answers
        ]
        correct = sum(1 for answer in graded if answer.is_correct)
        score = round(100 * correct / len(quiz.questions)) if quiz.questions else 0
        attempt = QuizAttempt(
            user_id=user_id,
            quiz_id=quiz.id,
            score=score,
            passed=score >= quiz.passing_score,
            started_at=started_at,
            completed_at=datetime.now(self._tz),
            answers=graded,
        )
        self.logging.info("Graded %s for %s: %d%% (%s).", quiz.id, user_id or "anonymous", score, "passed" if attempt.passed else "failed", extra={"organization": self._organization_id})
        return attempt
