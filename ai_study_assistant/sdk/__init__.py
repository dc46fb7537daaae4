"""
SDK for the AI Study Assistant.

Provides the chat API client used by the learning features.
"""

from .chat_client import ChatClient, ChatResponse

__all__ = ["ChatClient", "ChatResponse"]
