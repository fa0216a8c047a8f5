from datetime import datetime

from pydantic import BaseModel


class CreateFolderRequest(BaseModel):
    name: str


class QuizAttemptRequest(BaseModel):
    answers: dict[str, int]
    started_at: datetime | None = None
