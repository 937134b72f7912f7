from shared.helper.HelperConfig import HelperConfig
from shared.clients.index.IndexClientInterface import IndexClientInterface


class IndexClientManager:
    """
    Instantiates the search index client selected by INDEX_ENGINE.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the index engine from ENV configuration.

        Returns:
            str: The capitalised engine name, e.g. "Elasticsearch".

        Raises:
            ValueError: If INDEX_ENGINE is not set.
        """
        engine = self.helper_config.get_string_val("INDEX_ENGINE")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> IndexClientInterface:
        """
        Imports shared.clients.index.<engine>.IndexClient<Engine> and instantiates it.

        Returns:
            IndexClientInterface: The index client.

        Raises:
            ValueError: If the engine has no client implementation.
        """
        engine = self._get_engine_from_env()
        className = f"IndexClient{engine}"
        try:
            module = __import__(
                f"shared.clients.index.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported index engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated index client for engine: %s", engine)
        return client

    def get_client(self) -> IndexClientInterface:
        """
        Returns the instantiated index client.
        """
        return self.client
