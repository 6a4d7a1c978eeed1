"""
Message protocol module for RelayChat application.
Defines the event envelope exchanged over the real-time channel.
"""

import json
from dataclasses import dataclass

CHAT_MESSAGE = "chat message"


class ProtocolError(ValueError):
    """Raised when a frame is not a valid event envelope."""


@dataclass
class Message:
    """
    Event envelope carried by every real-time frame.

    Attributes:
        event (str): Event name, ``"chat message"`` for chat traffic
        data (str): Sender-supplied payload, relayed verbatim
    """
    event: str
    data: str

    @classmethod
    def chat(cls, text: str) -> 'Message':
        """Build a ``chat message`` event."""
        return cls(event=CHAT_MESSAGE, data=text)

    @property
    def is_chat(self) -> bool:
        return self.event == CHAT_MESSAGE

    def serialize(self) -> str:
        """
        Serialize a message object to JSON string.

        Returns:
            str: JSON representation of the message
        """
        return json.dumps({"event": self.event, "data": self.data})

    @classmethod
    def deserialize(cls, data: str) -> 'Message':
        """
        Create a Message object from JSON string.

        Args:
            data (str): JSON string to deserialize

        Returns:
            Message: Deserialized message object

        Raises:
            ProtocolError: If the frame is not a JSON object with a string
                ``event`` and a string ``data``
        """
        try:
            obj = json.loads(data)
        except (TypeError, json.JSONDecodeError) as e:
            raise ProtocolError(f"Frame is not JSON: {e}") from e

        if not isinstance(obj, dict):
            raise ProtocolError("Frame is not a JSON object")

        event = obj.get("event")
        payload = obj.get("data")
        if not isinstance(event, str) or not isinstance(payload, str):
            raise ProtocolError("Frame needs string 'event' and 'data' fields")

        return cls(event=event, data=payload)
