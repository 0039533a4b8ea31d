"""Raid week model."""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, Field

from models.dynamodb import WeekItem


class Week(BaseModel):
    """A raid week. ``is_current`` is derived from the current-week pointer."""

    week_number: int = Field(..., ge=1)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = False

    def to_dynamodb_item(self) -> WeekItem:
        """Convert to DynamoDB item format."""
        return WeekItem(
            SK=week_sort_key(self.week_number),
            week_number=self.week_number,
            started_at=self.started_at.isoformat(),
        )

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any], current: int | None = None) -> "Week":
        """Create a Week from a DynamoDB item and the current-week pointer."""
        week_number = int(item["week_number"])
        return cls(
            week_number=week_number,
            started_at=datetime.fromisoformat(item["started_at"]),
            is_current=current == week_number,
        )


def week_sort_key(week_number: int) -> str:
    # Zero padded so the sort key orders weeks numerically
    return f"WEEK#{week_number:06d}"
