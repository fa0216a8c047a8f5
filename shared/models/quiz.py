from datetime import datetime

from pydantic import BaseModel


class QuizQuestion(BaseModel):
    id: str
    question: str
    options: list[str]
    correct_answer_index: int


class Quiz(BaseModel):
    """
    A knowledge check linked to an SOP category and subcategory.

    Attributes:
        passing_score (int): Minimum percentage needed to pass.
        time_limit (int): Time limit in minutes.
        is_required (bool): Counts towards the user's required training.
    """
    id: str
    title: str
    description: str = ""
    category_id: str
    subcategory: str
    organization_id: str
    passing_score: int = 70
    time_limit: int = 30
    is_required: bool = False
    created_at: datetime | None = None
    created_by: str | None = None
    questions: list[QuizQuestion] = []


class QuizAnswer(BaseModel):
    question_id: str
    selected_answer_index: int
    is_correct: bool = False


class QuizAttempt(BaseModel):
    """
    A graded quiz attempt. Not persisted.
    """
    user_id: str | None = None
    quiz_id: str
    score: int
    passed: bool
    started_at: datetime | None = None
    completed_at: datetime | None = None
    answers: list[QuizAnswer] = []


class CompletedQuiz(BaseModel):
    """
    A recorded quiz score together with the title of its quiz. title is None
    when the score refers to a quiz that is no longer offered.
    """
    quiz_id: str
    title: str | None = None
    score: int
    passed: bool
    completed_at: datetime | None = None
