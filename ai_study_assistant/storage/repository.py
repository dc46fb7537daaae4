"""
Repository pattern for session history.

Persists finished-session summaries as a JSON list in a single flat file.
"""

import json
import logging
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from .models import ModeStatistics, SessionRecord, UsageStatistics

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = "data/history.json"

RULE = "-" * 59
DOUBLE_RULE = "=" * 59


class SessionRepository:
    """Append-only store of session summaries.

    The whole file is read and rewritten on each save; sessions are small
    and written once per feature session.
    """

    def __init__(self, history_file: str = DEFAULT_HISTORY_FILE):
        """Initialize the repository with a history file path.

        Args:
            history_file: Path to the JSON history file
        """
        self.history_file = Path(history_file)

    def initialize(self) -> None:
        """Create the data directory and an empty history file if missing."""
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        if not self.history_file.exists():
            self._write_records([])
            logger.info("Created history file %s", self.history_file)

    def save_session(self, record: SessionRecord) -> str:
        """Append a session record and return its id.

        A uuid4 id is generated when the record has none.
        """
        if not record.id:
            record = replace(record, id=str(uuid.uuid4()))

        records = self._read_raw()
        records.append(record.to_dict())
        self._write_records(records)

        logger.info("Session %s saved (mode=%s)", record.id, record.mode)
        return record.id

    def get_sessions(self, limit: int = 10) -> List[SessionRecord]:
        """Return the most recent sessions, newest first."""
        records = sorted(self._read_records(), key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    def get_sessions_by_mode(self, mode: str) -> List[SessionRecord]:
        return [r for r in self._read_records() if r.mode == mode]

    def get_statistics(self) -> UsageStatistics:
        records = self._read_records()
        if not records:
            return UsageStatistics(
                total_sessions=0,
                total_cost=0.0,
                total_tokens=0,
                average_cost_per_session=0.0,
                mode_stats={},
            )

        mode_stats: Dict[str, ModeStatistics] = {}
        for record in records:
            current = mode_stats.get(record.mode, ModeStatistics())
            mode_stats[record.mode] = ModeStatistics(
                count=current.count + 1,
                total_cost=current.total_cost + record.usage.cost,
                total_tokens=current.total_tokens + record.usage.total_tokens,
            )

        total_cost = sum(r.usage.cost for r in records)
        return UsageStatistics(
            total_sessions=len(records),
            total_cost=total_cost,
            total_tokens=sum(r.usage.total_tokens for r in records),
            average_cost_per_session=total_cost / len(records),
            mode_stats=mode_stats,
        )

    def clear_all(self) -> None:
        self._write_records([])
        logger.info("All session history cleared")

    def export_to_text(self, output_file: str) -> None:
        """Write statistics and every session, newest first, to a text file."""
        stats = self.get_statistics()
        lines = [
            DOUBLE_RULE,
            "AI Study Assistant - Session History".center(59).rstrip(),
            DOUBLE_RULE,
            "",
            "Overall",
            RULE,
            f"Total sessions: {stats.total_sessions}",
            f"Total cost: ${stats.total_cost:.6f}",
            f"Total tokens: {stats.total_tokens:,}",
            f"Average cost per session: ${stats.average_cost_per_session:.6f}",
            "",
        ]

        if stats.mode_stats:
            lines += ["By mode", RULE]
            for mode, data in stats.mode_stats.items():
                lines += [
                    f"{mode}:",
                    f"  Sessions: {data.count}",
                    f"  Total cost: ${data.total_cost:.6f}",
                    f"  Total tokens: {data.total_tokens:,}",
                    "",
                ]

        lines += ["Sessions", DOUBLE_RULE, ""]
        sessions = self.get_sessions(limit=stats.total_sessions)
        for index, record in enumerate(sessions, start=1):
            lines += [
                f"Session #{index}",
                RULE,
                f"ID: {record.id}",
                f"Mode: {record.mode}",
                f"Start: {record.start_time:%Y-%m-%d %H:%M:%S}",
                f"End: {record.end_time:%Y-%m-%d %H:%M:%S}",
                f"Messages: {record.message_count}",
                "Tokens:",
                f"  Input: {record.usage.input_tokens:,}",
                f"  Output: {record.usage.output_tokens:,}",
                f"  Total: {record.usage.total_tokens:,}",
                f"Cost: ${record.usage.cost:.6f}",
                "",
            ]

        Path(output_file).write_text("\n".join(lines), encoding="utf-8")
        logger.info("Session history exported to %s", output_file)

    def _read_records(self) -> List[SessionRecord]:
        return [SessionRecord.from_dict(item) for item in self._read_raw()]

    def _read_raw(self) -> List[dict]:
        """Read the stored list. A missing file reads as empty.

        Raises:
            ValueError: If the file is not a JSON list
        """
        try:
            content = self.history_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []

        try:
            data = json.loads(content) if content.strip() else []
        except json.JSONDecodeError as e:
            raise ValueError(f"History file {self.history_file} is corrupt: {e}")
        if not isinstance(data, list):
            raise ValueError(f"History file {self.history_file} must contain a JSON list")
        return data

    def _write_records(self, records: List[dict]) -> None:
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        self.history_file.write_text(
            json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8"
        )


# Global repository instance
_default_repository: Optional[SessionRepository] = None


def get_repository(history_file: str = DEFAULT_HISTORY_FILE) -> SessionRepository:
    """Get a repository instance.

    Returns the cached instance when it points at the same file.
    """
    global _default_repository
    if _default_repository is None or _default_repository.history_file != Path(history_file):
        _default_repository = SessionRepository(history_file)
    return _default_repository
