"""
Conversation history with token-budget trimming.

Keeps an ordered transcript plus one optional system prompt, drops the
oldest user/assistant pairs once the estimated size passes the configured
limit, and renders the transcript for the chat API or for people.
"""

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import (
    InvalidArgumentError,
    InvalidConfigurationError,
    UnsupportedExportFormatError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY_TOKENS = 100_000

# Conservative: English runs ~4 chars/token, CJK closer to 1.5
CHARS_PER_TOKEN = 3

EMPTY_CONVERSATION_TEXT = "(empty conversation)"

EXPORT_FORMATS = ("json", "markdown", "md", "text")


class MessageRole(str, Enum):
    """Roles understood by the chat API."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class Message:
    """One appended message. Never edited, only dropped by trimming."""
    role: MessageRole
    content: str
    created_at: datetime

    def to_api_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }


def estimate_tokens(text: str) -> int:
    """Rough token estimate used only to decide when to trim.

    Billing always uses the exact counts returned by the API.
    """
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class ConversationHistory:
    """Bounded, turn-consistent transcript for one feature session."""

    def __init__(self, system_prompt: str = "",
                 max_history_tokens: int = DEFAULT_MAX_HISTORY_TOKENS):
        if (isinstance(max_history_tokens, bool) or not isinstance(max_history_tokens, int)
                or max_history_tokens <= 0):
            raise InvalidConfigurationError("max_history_tokens must be a positive integer")
        _require_text("system_prompt", system_prompt)

        self._messages: List[Message] = []
        self._system_prompt = system_prompt
        self.max_history_tokens = max_history_tokens

    @property
    def message_count(self) -> int:
        return len(self._messages)

    def set_system_prompt(self, text: str) -> None:
        """Replace the system prompt. Does not trim."""
        _require_text("system_prompt", text)
        self._system_prompt = text
        logger.debug("System prompt updated (%d chars)", len(text))

    def get_system_prompt(self) -> str:
        return self._system_prompt

    def add_user_message(self, content: str) -> None:
        self._append(MessageRole.USER, content)

    def add_assistant_message(self, content: str) -> None:
        self._append(MessageRole.ASSISTANT, content)

    def remove_last_message(self) -> Optional[Message]:
        """Drop and return the newest message, or None when empty.

        Used to roll back a user message whose request failed.
        """
        if not self._messages:
            return None
        return self._messages.pop()

    def get_messages(self) -> List[Dict[str, str]]:
        """Payload for the chat API: system prompt first, no timestamps."""
        formatted = []
        if self._system_prompt:
            formatted.append({"role": MessageRole.SYSTEM.value, "content": self._system_prompt})
        formatted.extend(self.get_conversation_messages())
        return formatted

    def get_conversation_messages(self) -> List[Dict[str, str]]:
        """Stored messages only, for APIs that take the system prompt separately."""
        return [msg.to_api_dict() for msg in self._messages]

    def get_full_history(self) -> List[Message]:
        return list(self._messages)

    def get_turn_count(self) -> int:
        """Number of complete user + assistant pairs."""
        return len(self._messages) // 2

    def clear(self) -> None:
        """Drop all messages. The system prompt stays."""
        self._messages = []
        logger.info("Conversation history cleared")

    def estimate_tokens(self) -> int:
        total = 0
        if self._system_prompt:
            total += estimate_tokens(self._system_prompt)
        for msg in self._messages:
            total += estimate_tokens(msg.content)
        return total

    def export_to_text(self) -> str:
        if not self._messages and not self._system_prompt:
            return EMPTY_CONVERSATION_TEXT

        lines = []
        if self._system_prompt:
            lines.append("=== System Prompt ===")
            lines.append(self._system_prompt)
            lines.append("")

        if self._messages:
            lines.append("=== Conversation ===")
            for msg in self._messages:
                timestamp = msg.created_at.strftime("%Y-%m-%d %H:%M:%S")
                lines.append(f"[{timestamp}] {msg.role.label}:")
                lines.append(msg.content)
                lines.append("")

        return "\n".join(lines)

    def export(self, fmt: str, title: str = "Conversation") -> str:
        """Render the conversation as json, markdown/md or text.

        Raises:
            UnsupportedExportFormatError: For any other format
        """
        fmt_key = fmt.strip().lower() if isinstance(fmt, str) else fmt
        if fmt_key not in EXPORT_FORMATS:
            raise UnsupportedExportFormatError(str(fmt))

        if fmt_key == "json":
            return json.dumps([msg.to_dict() for msg in self._messages],
                              indent=2, ensure_ascii=False)

        if fmt_key in ("markdown", "md"):
            return (
                f"# {title}\n\n"
                f"**Exported at**: {datetime.now().isoformat()}\n"
                f"**Messages**: {len(self._messages)}\n\n"
                "---\n\n"
                f"{self.export_to_text()}"
            )

        return f"{title}\n{'=' * 50}\n\n{self.export_to_text()}"

    def _append(self, role: MessageRole, content: str) -> None:
        _require_text("content", content)
        self._messages.append(Message(role=role, content=content, created_at=datetime.now()))
        self._trim_if_needed()

    def _trim_if_needed(self) -> None:
        total = self.estimate_tokens()
        if total <= self.max_history_tokens:
            return

        logger.warning(
            "History exceeds token limit (%d > %d), trimming oldest turns",
            total, self.max_history_tokens,
        )

        # Whole pairs only, so the front stays user-first; the prompt is never dropped
        while self.estimate_tokens() > self.max_history_tokens and len(self._messages) >= 2:
            del self._messages[:2]

        logger.info("Trimming done, estimated tokens now %d", self.estimate_tokens())


def _require_text(name: str, value: Any) -> None:
    if not isinstance(value, str):
        raise InvalidArgumentError(
            f"{name} must be a string, got {type(value).__name__}",
            details={"field": name},
        )
