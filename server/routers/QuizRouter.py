from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_current_profile, get_organization_id, verify_api_key
from server.models.requests import QuizAttemptRequest
from services.quizzes.QuizService import QuizService
from shared.models.quiz import CompletedQuiz, Quiz, QuizAttempt
from shared.models.user import UserProfile

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


def _get_quiz_service(request: Request, organization_id: str) -> QuizService:
    return QuizService(helper_config=request.app.state.helper_config, organization_id=organization_id)


@router.get("")
async def list_quizzes(
    request: Request,
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> list[Quiz]:
    return _get_quiz_service(request, organization_id).get_quizzes()


@router.get("/required")
async def list_required_training(
    request: Request,
    profile: UserProfile = Depends(get_current_profile),
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> list[Quiz]:
    """Required quizzes the caller has not passed yet."""
    return _get_quiz_service(request, organization_id).get_required_training(profile)


@router.get("/completed")
async def list_completed(
    request: Request,
    profile: UserProfile = Depends(get_current_profile),
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> list[CompletedQuiz]:
    return _get_quiz_service(request, organization_id).get_completed(profile)


@router.post("/{quiz_id}/attempts")
async def grade_attempt(
    request: Request,
    quiz_id: str,
    body: QuizAttemptRequest,
    profile: UserProfile = Depends(get_current_profile),
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> QuizAttempt:
    """Grade one quiz attempt. The result is not stored."""
    return _get_quiz_service(request, organization_id).do_grade_attempt(
        quiz_id, body.answers, user_id=profile.id, started_at=body.started_at
    )
