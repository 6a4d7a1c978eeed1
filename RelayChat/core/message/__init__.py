from .protocol import CHAT_MESSAGE, Message, ProtocolError

__all__ = ['CHAT_MESSAGE', 'Message', 'ProtocolError']
