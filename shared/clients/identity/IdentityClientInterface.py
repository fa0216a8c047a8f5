from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors.exceptions import RemoteIOError
from shared.helper.HelperConfig import HelperConfig
from shared.models.store import AuthSession


class IdentityClientInterface(ClientInterface):
    """
    Narrow identity provider adapter. The library only consumes "who is the
    current user" and "is anybody signed in"; sign-in and token verification
    exist so that those two questions can be answered.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._session: AuthSession | None = None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def is_authenticated(self) -> bool:
        return self._session is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "identity"

    def get_current_user_id(self) -> str | None:
        return self._session.user_id if self._session else None

    def get_session(self) -> AuthSession | None:
        return self._session

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_sign_in(self) -> str:
        """
        Returns the endpoint path for password sign-in.
        """
        pass

    @abstractmethod
    def _get_endpoint_lookup(self) -> str:
        """
        Returns the endpoint path that resolves an id token to its account.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_sign_in(self, response: dict) -> AuthSession:
        pass

    @abstractmethod
    def _parse_lookup(self, response: dict) -> str | None:
        """
        Returns the user id of the looked-up account, or None if the token matched no account.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_sign_in(self, email: str, password: str) -> AuthSession:
        """
        Signs in with email and password and keeps the session as the current user.

        Raises:
            RemoteIOError: If the credentials are rejected or the request fails.
        """
        resp = await self.do_request(
            method="POST",
            json={"email": email, "password": password, "returnSecureToken": True},
            endpoint=self._get_endpoint_sign_in(),
        )
        self._session = self._parse_sign_in(resp.json())
        self.logging.info("Signed in user %s", self._session.user_id)
        return self._session

    async def do_verify_token(self, id_token: str) -> str:
        """
        Resolves an id token issued to some client into its user id.

        Raises:
            RemoteIOError: If the token is invalid, expired or matches no account.
        """
        resp = await self.do_request(method="POST", json={"idToken": id_token}, endpoint=self._get_endpoint_lookup())
        user_id = self._parse_lookup(resp.json())
        if not user_id:
            raise RemoteIOError("Id token does not belong to any account.", status_code=401)
        return user_id

    def sign_out(self) -> None:
        """Forget the current session. Tokens already issued stay valid until they expire."""
        if self._session:
            self.logging.info("Signed out user %s", self._session.user_id)
        self._session = None

    async def do_healthcheck(self) -> httpx.Response:
        # the identity API has no unauthenticated read endpoint, an empty lookup must answer 400
        resp = await self.do_request(method="POST", json={"idToken": ""}, endpoint=self._get_endpoint_lookup(), raise_on_error=False)
        if resp.status_code >= 500:
            raise RemoteIOError(f"Identity backend unhealthy, status {resp.status_code}", status_code=resp.status_code)
        return resp
