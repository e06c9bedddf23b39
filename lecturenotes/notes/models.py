"""Lecture note and summary data types."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

TITLE_PREFIX = "Lecture –"


@dataclass(frozen=True)
class LectureNote:
    """A single recorded lecture."""
    id: uuid.UUID
    title: str
    date: datetime
    audio_file_path: str
    transcript_text: Optional[str] = None

    def __post_init__(self):
        if self.transcript_text == "":
            object.__setattr__(self, "transcript_text", None)

    @classmethod
    def create(
        cls,
        audio_file_path: str,
        transcript_text: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "LectureNote":
        """Create a note with a fresh id and the default title."""
        if now is None:
            now = datetime.now(timezone.utc)
        return cls(
            id=uuid.uuid4(),
            title=default_title(now),
            date=now,
            audio_file_path=audio_file_path,
            transcript_text=transcript_text,
        )

    @property
    def has_transcript(self) -> bool:
        return bool(self.transcript_text)

    def with_title(self, title: str) -> "LectureNote":
        return replace(self, title=title)

    def with_transcript(self, text: Optional[str]) -> "LectureNote":
        return replace(self, transcript_text=text or None)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the stable on-disk field names."""
        return {
            "id": str(self.id).upper(),
            "title": self.title,
            "date": format_timestamp(self.date),
            "audioFilePath": self.audio_file_path,
            "transcriptText": self.transcript_text,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LectureNote":
        return cls(
            id=uuid.UUID(data["id"]),
            title=data["title"],
            date=parse_timestamp(data["date"]),
            audio_file_path=data["audioFilePath"],
            transcript_text=data.get("transcriptText"),
        )


@dataclass
class SummaryResult:
    """Summary text and key points derived from a transcript."""
    summary: str
    key_points: list[str] = field(default_factory=list)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_medium_date(value: datetime) -> str:
    """``Oct 17, 2026`` in local time."""
    local = value.astimezone() if value.tzinfo else value
    return f"{local:%b} {local.day}, {local.year}"


def format_medium_datetime(value: datetime) -> str:
    """``Oct 17, 2026 at 9:38 PM`` in local time."""
    local = value.astimezone() if value.tzinfo else value
    hour = local.hour % 12 or 12
    return f"{format_medium_date(local)} at {hour}:{local:%M %p}"


def default_title(created: datetime) -> str:
    return f"{TITLE_PREFIX} {format_medium_date(created)}"
