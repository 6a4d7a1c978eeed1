"""
Shared components for the command-line client.
"""

from .exceptions import ClientError, AuthenticationError, WsConnectionError

__all__ = [
    'ClientError',
    'AuthenticationError',
    'WsConnectionError',
]
