from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig

# client type -> default engine, used when {TYPE}_ENGINE is not set
DEFAULT_ENGINES: dict[str, str] = {
    "store": "Firestore",
    "blob": "Firebase",
    "identity": "Firebase",
}


class ClientManager:
    """
    Instantiates the client configured for one client type ("store", "blob", "identity").

    The engine is read from {TYPE}_ENGINE and resolved to the class
    shared.clients.{type}.{engine}.{Type}Client{Engine}.
    """

    def __init__(self, helper_config: HelperConfig, client_type: str):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client_type = client_type.strip().lower()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """Read the engine name for this client type from env configuration.

        Returns:
            str: Capitalised engine name (e.g. "Firestore").

        Raises:
            ValueError: If no engine is configured and there is no default.
        """
        default = DEFAULT_ENGINES.get(self.client_type)
        engine = self.helper_config.get_string_val(f"{self.client_type.upper()}_ENGINE", default=default)
        if not engine:
            raise ValueError(f"No {self.client_type} engine specified in configuration ({self.client_type.upper()}_ENGINE).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """Instantiate the client for the configured engine.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.client_type.capitalize()}Client{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
            client = client_class(helper_config=self.helper_config)
            self.logging.debug("Instantiated %s client for engine: %s", self.client_type, engine)
            return client
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported %s engine '%s'. Error: %s" % (self.client_type, engine, e))

    def get_client(self) -> ClientInterface:
        """Return the instantiated client."""
        return self.client
