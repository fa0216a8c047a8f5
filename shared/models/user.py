from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class AccountType(str, Enum):
    ADMIN = "Admin"
    HUSBANDRY = "Husbandry"
    SUPERVISOR = "Supervisor"
    VETERINARIAN = "Veterinarian"
    VET_SERVICES = "Vet Services"


class QuizScore(BaseModel):
    """
    One completed quiz as recorded on a user profile.
    """
    quiz_id: str
    score: int
    passed: bool
    completed_at: datetime | None = None


class UserProfile(BaseModel):
    """
    The profile stored for a signed-in user. organization_id is None until the
    user has been attached to an organization.
    """
    id: str
    organization_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    account_type: AccountType | None = None
    quiz_scores: list[QuizScore] = []
