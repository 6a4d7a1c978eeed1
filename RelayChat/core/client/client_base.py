from RelayChat.config import Config


class Client:
    """
    Base client class holding the server address.
    """

    def __init__(self, host: str = "localhost", port: int = Config.DEFAULT_PORT):
        """
        Initialize client with connection parameters.

        Args:
            host (str): Server hostname to connect to
            port (int): Server port number
        """
        self.host = host
        self.port = port

    async def run(self):
        """
        Start the client.
        Must be implemented by subclasses.
        """
        raise NotImplementedError
