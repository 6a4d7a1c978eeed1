from .message.protocol import CHAT_MESSAGE, Message

__all__ = ['CHAT_MESSAGE', 'Message']
