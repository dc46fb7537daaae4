"""
Unit tests for conversation history.

Tests message ordering, trimming policy, and export formats.
"""

import json
from datetime import datetime

import pytest

from ai_study_assistant.core.conversation import (
    EMPTY_CONVERSATION_TEXT,
    ConversationHistory,
    Message,
    MessageRole,
    estimate_tokens,
)
from ai_study_assistant.core.errors import (
    InvalidArgumentError,
    InvalidConfigurationError,
    UnsupportedExportFormatError,
)


class TestMessages:
    """Test adding and reading messages."""

    def setup_method(self):
        self.history = ConversationHistory()

    def test_starts_empty(self):
        assert self.history.get_messages() == []
        assert self.history.get_full_history() == []
        assert self.history.get_system_prompt() == ""

    def test_get_messages_with_system_prompt(self):
        """Verify system prompt comes first and timestamps are stripped."""
        self.history.set_system_prompt("Be helpful")
        self.history.add_user_message("Hello")
        self.history.add_assistant_message("Hi there")

        assert self.history.get_messages() == [
            {"role": "system", "content": "Be helpful"},
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hi there"},
        ]

    def test_conversation_messages_exclude_system_prompt(self):
        self.history.set_system_prompt("Be helpful")
        self.history.add_user_message("Hello")
        assert self.history.get_conversation_messages() == [{"role": "user", "content": "Hello"}]

    def test_set_system_prompt_replaces(self):
        """Verify at most one system prompt is active."""
        self.history.set_system_prompt("first")
        self.history.set_system_prompt("second")
        messages = self.history.get_messages()
        assert messages == [{"role": "system", "content": "second"}]

    def test_full_history_has_timestamps(self):
        self.history.add_user_message("Hello")
        [message] = self.history.get_full_history()
        assert isinstance(message, Message)
        assert message.role == MessageRole.USER
        assert isinstance(message.created_at, datetime)

    def test_full_history_is_a_copy(self):
        """Verify mutating the returned list leaves internal state alone."""
        self.history.add_user_message("Hello")
        copy = self.history.get_full_history()
        copy.clear()
        assert self.history.message_count == 1

    def test_whitespace_content_stored_verbatim(self):
        self.history.add_user_message("   ")
        assert self.history.get_messages() == [{"role": "user", "content": "   "}]

    def test_non_string_content_rejected(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            self.history.add_user_message(42)
        assert exc_info.value.code == "INVALID_ARGUMENT"
        assert self.history.message_count == 0

    def test_non_string_system_prompt_rejected(self):
        with pytest.raises(InvalidArgumentError):
            self.history.set_system_prompt(None)

    def test_turn_count_floor(self):
        """Verify only complete pairs count as turns."""
        self.history.add_user_message("q1")
        assert self.history.get_turn_count() == 0
        self.history.add_assistant_message("a1")
        assert self.history.get_turn_count() == 1
        self.history.add_user_message("q2")
        assert self.history.get_turn_count() == 1

    def test_clear_keeps_system_prompt(self):
        self.history.set_system_prompt("Be helpful")
        self.history.add_user_message("Hello")
        self.history.clear()
        assert self.history.message_count == 0
        assert self.history.get_messages() == [{"role": "system", "content": "Be helpful"}]

    def test_remove_last_message(self):
        self.history.add_user_message("q1")
        self.history.add_assistant_message("a1")
        self.history.add_user_message("q2")

        removed = self.history.remove_last_message()

        assert removed.content == "q2"
        assert self.history.get_conversation_messages() == [
            {"role": "user", "content": "q1"},
            {"role": "assistant", "content": "a1"},
        ]

    def test_remove_last_message_when_empty(self):
        assert self.history.remove_last_message() is None

    def test_invalid_max_history_tokens(self):
        for bad in (0, -5, 1.5, True):
            with pytest.raises(InvalidConfigurationError):
                ConversationHistory(max_history_tokens=bad)


class TestTrimming:
    """Test token-budget trimming."""

    def test_estimate_rounds_up(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("a") == 1
        assert estimate_tokens("abc") == 1
        assert estimate_tokens("abcd") == 2

    def test_history_estimate_includes_system_prompt(self):
        history = ConversationHistory(system_prompt="x" * 9)
        history.add_user_message("y" * 6)
        assert history.estimate_tokens() == 5

    def test_no_trim_under_limit(self):
        history = ConversationHistory(max_history_tokens=100)
        for i in range(5):
            history.add_user_message(f"q{i}")
            history.add_assistant_message(f"a{i}")
        assert history.message_count == 10

    def test_trims_oldest_pairs(self):
        """Verify trimming drops whole pairs from the front."""
        history = ConversationHistory(max_history_tokens=10)
        calls = 0
        for i in range(10):
            history.add_user_message(f"question {i}")  # 4 tokens each
            history.add_assistant_message(f"answer {i}!")  # 3 tokens each
            calls += 2

        messages = history.get_messages()
        assert len(messages) < calls
        assert len(messages) % 2 == 0
        assert history.estimate_tokens() <= 10
        assert messages[0]["role"] == "user"
        assert messages[-1] == {"role": "assistant", "content": "answer 9!"}

    def test_trim_after_user_message_keeps_newest(self):
        """Verify a trim triggered by a user message keeps that message."""
        history = ConversationHistory(max_history_tokens=5)
        history.add_user_message("aaa")
        history.add_assistant_message("bbb")
        history.add_user_message("c" * 12)  # 4 tokens: total 6 > 5

        assert history.get_messages() == [{"role": "user", "content": "c" * 12}]

    def test_system_prompt_never_evicted(self):
        """Verify trimming stops once fewer than two messages remain."""
        history = ConversationHistory(system_prompt="s" * 30, max_history_tokens=5)
        history.add_user_message("hello")
        history.add_assistant_message("world")
        history.add_user_message("again")

        assert history.get_system_prompt() == "s" * 30
        assert history.get_messages() == [
            {"role": "system", "content": "s" * 30},
            {"role": "user", "content": "again"},
        ]

    def test_set_system_prompt_does_not_trim(self):
        history = ConversationHistory(max_history_tokens=5)
        history.add_user_message("hi")
        history.add_assistant_message("yo")
        history.set_system_prompt("p" * 300)
        assert history.message_count == 2


class TestExport:
    """Test text and formatted exports."""

    def test_empty_export_sentinel(self):
        assert ConversationHistory().export_to_text() == EMPTY_CONVERSATION_TEXT

    def test_export_contains_label_and_text(self):
        history = ConversationHistory()
        history.add_user_message("hi")
        text = history.export_to_text()
        assert "User:" in text
        assert "hi" in text

    def test_export_orders_system_prompt_first(self):
        history = ConversationHistory(system_prompt="Be brief")
        history.add_user_message("question")
        history.add_assistant_message("reply")
        text = history.export_to_text()
        assert text.index("Be brief") < text.index("question") < text.index("reply")
        assert "Assistant:" in text

    def test_system_prompt_only_is_not_empty(self):
        text = ConversationHistory(system_prompt="Be brief").export_to_text()
        assert text != EMPTY_CONVERSATION_TEXT
        assert "Be brief" in text

    def test_json_export(self):
        history = ConversationHistory()
        history.add_user_message("hi")
        data = json.loads(history.export("json"))
        assert data[0]["role"] == "user"
        assert data[0]["content"] == "hi"
        datetime.fromisoformat(data[0]["created_at"])

    def test_markdown_export(self):
        history = ConversationHistory()
        history.add_user_message("hi")
        for fmt in ("markdown", "md", "MD"):
            output = history.export(fmt, title="Tutor conversation")
            assert output.startswith("# Tutor conversation")
            assert "**Messages**: 1" in output

    def test_text_export(self):
        history = ConversationHistory()
        output = history.export("text")
        assert output.startswith("Conversation\n" + "=" * 50)
        assert output.endswith(EMPTY_CONVERSATION_TEXT)

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedExportFormatError) as exc_info:
            ConversationHistory().export("pdf")
        assert exc_info.value.code == "UNSUPPORTED_EXPORT_FORMAT"
        assert exc_info.value.format == "pdf"
