"""
Data models for storage layer.

Defines the session summary records written to the history file.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ai_study_assistant.core.token_counter import UsageRecord


@dataclass(frozen=True)
class SessionRecord:
    """Immutable summary of one finished feature session.

    Append-only: once written, records are never modified, only cleared
    all at once.
    """
    mode: str
    usage: UsageRecord
    start_time: datetime
    end_time: datetime
    message_count: int = 0
    id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "mode": self.mode,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "usage": self.usage.to_dict(),
            "message_count": self.message_count,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        """Build a record from its stored form.

        Missing timestamps fall back to each other; a record with none of
        them is rejected.

        Raises:
            ValueError: If the record is not a mapping or has no usable timestamp
        """
        if not isinstance(data, dict):
            raise ValueError(f"Session record must be an object, got {type(data).__name__}")

        stamp = data.get("created_at") or data.get("end_time") or data.get("start_time")
        if not stamp:
            raise ValueError(f"Session record {data.get('id')!r} has no timestamp")

        try:
            return cls(
                id=data.get("id"),
                mode=data.get("mode") or "unknown",
                start_time=datetime.fromisoformat(data.get("start_time") or stamp),
                end_time=datetime.fromisoformat(data.get("end_time") or stamp),
                usage=UsageRecord.from_dict(data.get("usage") or {}),
                message_count=int(data.get("message_count") or 0),
                created_at=datetime.fromisoformat(stamp),
            )
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Malformed session record {data.get('id')!r}: {e}")


@dataclass(frozen=True)
class ModeStatistics:
    """Aggregates for one feature mode."""
    count: int = 0
    total_cost: float = 0.0
    total_tokens: int = 0


@dataclass(frozen=True)
class UsageStatistics:
    """Aggregates across all stored sessions."""
    total_sessions: int
    total_cost: float
    total_tokens: int
    average_cost_per_session: float
    mode_stats: Dict[str, ModeStatistics]
