"""
Shared behavior for the learning features.

Each feature owns one ConversationHistory seeded with its packaged system
prompt and turns a typed payload into a user message for the chat client.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from ai_study_assistant.core.conversation import ConversationHistory, DEFAULT_MAX_HISTORY_TOKENS
from ai_study_assistant.core.errors import InvalidArgumentError
from ai_study_assistant.core.token_counter import TokenUsage
from ai_study_assistant.sdk.chat_client import ChatClient

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

EXIT_SIGNAL = "EXIT_SIGNAL"
BUDGET_SIGNAL = "BUDGET_SIGNAL"


@dataclass(frozen=True)
class FeatureResult:
    """Reply text, its exact usage, and the requested model it is billed at."""
    response: str
    usage: TokenUsage
    model: str


@dataclass(frozen=True)
class SessionSummary:
    feature: str
    message_count: int
    turn_count: int
    start_time: Optional[datetime]
    last_activity: Optional[datetime]


class BaseFeature:
    """Base class for learning features.

    Subclasses set ``name``, ``title``, ``prompt_file`` and sampling
    defaults, and implement ``build_message``.
    """
    name = "feature"
    title = "Assistant"
    prompt_file: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    payload_type: type = object

    def __init__(
        self,
        client: ChatClient,
        history: Optional[ConversationHistory] = None,
        system_prompt: Optional[str] = None,
        max_history_tokens: int = DEFAULT_MAX_HISTORY_TOKENS,
    ):
        self.client = client
        self.history = history or ConversationHistory(max_history_tokens=max_history_tokens)

        if system_prompt is None:
            system_prompt = self._load_system_prompt()
        if system_prompt:
            self.history.set_system_prompt(system_prompt)

    def build_message(self, payload) -> str:
        raise NotImplementedError("build_message must be implemented by subclasses")

    def execute(self, payload) -> FeatureResult:
        """Send one payload to the chat API and record the exchange.

        When the call fails the user message is removed again, so history
        keeps alternating user and assistant turns; no usage is reported.

        Raises:
            InvalidArgumentError: If the payload is the wrong type or empty
            ChatClientError: If the chat API call fails
        """
        if not isinstance(payload, self.payload_type):
            raise InvalidArgumentError(
                f"{self.name} expects {self.payload_type.__name__}, "
                f"got {type(payload).__name__}"
            )

        message = self.build_message(payload)
        self.history.add_user_message(message)

        try:
            response = self.client.send_message(
                self.history.get_messages(),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception:
            self.history.remove_last_message()
            raise
        self.history.add_assistant_message(response.content)

        logger.info(
            "%s answered (%d in / %d out tokens)",
            self.name, response.usage.input_tokens, response.usage.output_tokens,
        )
        return FeatureResult(
            response=response.content,
            usage=response.usage,
            model=self.client.model,
        )

    def clear_conversation(self) -> None:
        self.history.clear()

    def get_session_summary(self) -> SessionSummary:
        messages = self.history.get_full_history()
        return SessionSummary(
            feature=self.name,
            message_count=len(messages),
            turn_count=self.history.get_turn_count(),
            start_time=messages[0].created_at if messages else None,
            last_activity=messages[-1].created_at if messages else None,
        )

    def export_conversation(self, fmt: str = "markdown") -> str:
        return self.history.export(fmt, title=f"{self.title} conversation")

    def handle_command(self, command: str) -> Optional[str]:
        """Handle a slash command.

        Returns:
            Text to show, EXIT_SIGNAL / BUDGET_SIGNAL for the caller to act
            on, or None when the input is not a known command
        """
        parts = command.strip().split()
        if not parts:
            return None
        name = parts[0].lower()

        if name == "/help":
            return self.get_help_message()
        if name == "/clear":
            self.clear_conversation()
            return "Conversation history cleared."
        if name == "/summary":
            return _format_summary(self.get_session_summary())
        if name == "/export":
            fmt = parts[1].lower() if len(parts) > 1 else "markdown"
            return self.export_conversation(fmt)
        if name == "/budget":
            return BUDGET_SIGNAL
        if name == "/exit":
            return EXIT_SIGNAL
        return None

    def get_help_message(self) -> str:
        return (
            f"{self.title} - commands\n"
            "  /help            show this help\n"
            "  /clear           clear the conversation history\n"
            "  /summary         show session summary\n"
            "  /export [fmt]    export the conversation (json, md, text)\n"
            "  /budget          show budget usage\n"
            "  /exit            leave this mode"
        )

    def _load_system_prompt(self) -> Optional[str]:
        if not self.prompt_file:
            return None
        prompt_path = PROMPTS_DIR / self.prompt_file
        try:
            prompt = prompt_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Could not load system prompt %s: %s", prompt_path, e)
            return None
        logger.debug("Loaded system prompt %s", self.prompt_file)
        return prompt.strip()


def require_field(name: str, value: Optional[str]) -> str:
    """Return ``value`` or raise when it is missing or blank."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{name} is required and cannot be empty")
    return value


def _format_summary(summary: SessionSummary) -> str:
    def fmt(ts: Optional[datetime]) -> str:
        return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else "N/A"

    return (
        "Session summary\n"
        f"Feature: {summary.feature}\n"
        f"Messages: {summary.message_count}\n"
        f"Turns: {summary.turn_count}\n"
        f"Started: {fmt(summary.start_time)}\n"
        f"Last activity: {fmt(summary.last_activity)}"
    )
