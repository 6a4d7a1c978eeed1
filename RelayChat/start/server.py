"""
Server startup module for RelayChat application.
Provides the entry point for starting the HTTP routes and the chat socket.
"""

from RelayChat.config import Config
from RelayChat.core.logging import auto_configure
from RelayChat.web.routes import run


def server(port=None, host=None):
    """
    Start the chat server.

    Args:
        port (int): Port to listen on (default: PORT from the environment)
        host (str): Address to bind (default: HOST from the environment)
    """
    config = Config()
    auto_configure(config.ENV)
    try:
        run(config, host=host, port=port)
    except KeyboardInterrupt:
        print("Closed by user.")
