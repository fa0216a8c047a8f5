from shared.clients.identity.IdentityClientInterface import IdentityClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.store import AuthSession


class IdentityClientFirebase(IdentityClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://identitytoolkit.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Firebase"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {}

    def _get_auth_params(self) -> dict:
        return {"key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return self._get_endpoint_lookup()

    def _get_endpoint_sign_in(self) -> str:
        return "/v1/accounts:signInWithPassword"

    def _get_endpoint_lookup(self) -> str:
        return "/v1/accounts:lookup"

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_sign_in(self, response: dict) -> AuthSession:
        expires_in = response.get("expiresIn")
        return AuthSession(
            user_id=response.get("localId"),
            id_token=response.get("idToken"),
            refresh_token=response.get("refreshToken"),
            email=response.get("email"),
            expires_in=int(expires_in) if expires_in else None,
        )

    def _parse_lookup(self, response: dict) -> str | None:
        users = response.get("users") or []
        return users[0].get("localId") if users else None
