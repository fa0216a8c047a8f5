"""Resolves who is calling: identity provider account plus the stored user profile."""

from typing import Any

from pytz.tzinfo import BaseTzInfo

from shared.clients.identity.IdentityClientInterface import IdentityClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.store import AuthSession
from shared.models.user import AccountType, QuizScore, UserProfile
from services.sop_library.SOPRepository import SCOPE_FIELD_VARIANTS, normalize_timestamp

USERS_COLLECTION = "users"


class SessionService:
    def __init__(self, helper_config: HelperConfig, identity_client: IdentityClientInterface, store_client: StoreClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._identity = identity_client
        self._store = store_client
        self._tz: BaseTzInfo = helper_config.get_timezone()
        self._users_collection = helper_config.get_string_val("SESSION_USERS_COLLECTION", default=USERS_COLLECTION)
        self._profile: UserProfile | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_current_user_id(self) -> str | None:
        return self._identity.get_current_user_id()

    def is_authenticated(self) -> bool:
        return self._identity.is_authenticated()

    async def get_current_user_profile(self) -> UserProfile | None:
        """
        Returns the profile of the signed-in user, or None while nobody is signed in
        or the user has no profile record yet. The profile is cached per session.

        Raises:
            RemoteIOError: If the profile record cannot be read.
        """
        user_id = self._identity.get_current_user_id()
        if not user_id:
            self._profile = None
            return None
        if self._profile is None or self._profile.id != user_id:
            self._profile = await self.do_fetch_profile(user_id)
        return self._profile

    def get_current_organization_id(self) -> str | None:
        return self._profile.organization_id if self._profile else None

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_sign_in(self, email: str, password: str) -> UserProfile | None:
        """
        Signs in and resolves the profile of the new session.

        Raises:
            RemoteIOError: If the credentials are rejected or the profile cannot be read.
        """
        session: AuthSession = await self._identity.do_sign_in(email, password)
        self._profile = None
        self.logging.debug("Resolving profile for %s", session.user_id)
        return await self.get_current_user_profile()

    def sign_out(self) -> None:
        self._identity.sign_out()
        self._profile = None

    async def do_fetch_profile(self, user_id: str) -> UserProfile | None:
        """
        Reads users/{user_id}.

        Raises:
            RemoteIOError: If the record cannot be read.
        """
        record = await self._store.do_get(self._users_collection, user_id)
        if record is None:
            self.logging.warning("User %s has no profile record.", user_id)
            return None
        return self._parse_profile(user_id, record.fields)

    async def do_resolve_token(self, id_token: str) -> UserProfile | None:
        """
        Resolves a caller's id token into their profile without touching the current session.

        Raises:
            RemoteIOError: If the token is rejected or the profile cannot be read.
        """
        user_id = await self._identity.do_verify_token(id_token)
        return await self.do_fetch_profile(user_id)

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_profile(self, user_id: str, fields: dict[str, Any]) -> UserProfile:
        organization_id = None
        for variant in SCOPE_FIELD_VARIANTS:
            if fields.get(variant):
                organization_id = str(fields[variant])
                break

        account_type = None
        raw_type = fields.get("accountType")
        if raw_type:
            try:
                account_type = AccountType(raw_type)
            except ValueError:
                self.logging.warning("User %s has unknown account type '%s'.", user_id, raw_type)

        quiz_scores = []
        for raw_score in fields.get("quizScores") or []:
            if not isinstance(raw_score, dict) or not raw_score.get("quizId"):
                continue
            quiz_scores.append(QuizScore(
                quiz_id=raw_score["quizId"],
                score=int(raw_score.get("score") or 0),
                passed=bool(raw_score.get("passed")),
                completed_at=normalize_timestamp(raw_score.get("completedAt"), self._tz),
            ))

        return UserProfile(
            id=user_id,
            organization_id=organization_id,
            first_name=fields.get("firstName"),
            last_name=fields.get("lastName"),
            email=fields.get("email") or fields.get("userEmail"),
            account_type=account_type,
            quiz_scores=quiz_scores,
        )
