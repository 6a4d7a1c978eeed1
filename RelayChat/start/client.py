"""
Client startup module for RelayChat application.
Provides the entry point for starting the command-line chat client.
"""

import asyncio

from RelayChat.config import Config
from RelayChat.core.client import StandardCommandlineClient
from RelayChat.core.client.utils import ClientError

__all__ = ['client']


def client(host="localhost", port=Config.DEFAULT_PORT, cookie_name=Config.DEFAULT_COOKIE_NAME):
    """
    Start the command-line client.

    Args:
        host (str): Server hostname to connect to (default: localhost)
        port (int): Server port number (default: 3000)
        cookie_name (str): Session cookie name used by the server
    """
    print("Welcome to RelayChat!")
    print(f"Current setting: server={host}:{port}")
    try:
        asyncio.run(StandardCommandlineClient(host, port, cookie_name).run())
    except KeyboardInterrupt:
        print("\nBye!")
    except ClientError as e:
        print(f"Failed to connect: {e}")
