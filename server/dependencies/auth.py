from fastapi import Depends, Header, HTTPException, Request

from shared.errors.exceptions import NotReadyError, RemoteIOError
from shared.models.user import UserProfile


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Verify the X-Api-Key header against the configured API key.

    Args:
        request (Request): The FastAPI request object (provides app.state).
        x_api_key (str): The value of the X-Api-Key header.

    Raises:
        HTTPException: 401 if the key is missing or does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("API_SERVER_API_KEY")
    if x_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


async def get_current_profile(request: Request, authorization: str = Header(...)) -> UserProfile:
    """Resolve the caller's profile from the "Authorization: Bearer <id token>" header.

    Raises:
        HTTPException: 401 if the header is malformed or the token is rejected,
            403 if the account has no profile record.
        RemoteIOError: If the identity provider or document store cannot be reached.
    """
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Expected 'Authorization: Bearer <id token>'")

    session_service = request.app.state.session_service
    try:
        profile = await session_service.do_resolve_token(token.strip())
    except RemoteIOError as e:
        if e.status_code in (400, 401, 403):
            raise HTTPException(status_code=401, detail="Invalid or expired id token")
        raise
    if profile is None:
        raise HTTPException(status_code=403, detail="No user profile for this account")
    return profile


async def get_organization_id(profile: UserProfile = Depends(get_current_profile)) -> str:
    """The organization scope of the caller.

    Raises:
        NotReadyError: If the caller's profile is not attached to an organization yet.
    """
    if not profile.organization_id:
        raise NotReadyError()
    return profile.organization_id
