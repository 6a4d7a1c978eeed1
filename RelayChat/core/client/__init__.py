"""
Client module for RelayChat application.
Provides the base client and the standard command-line client.
"""

from .client_base import Client
from .command_line_client import StandardCommandlineClient

__all__ = ['Client', 'StandardCommandlineClient']
