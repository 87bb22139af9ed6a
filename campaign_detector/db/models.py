"""Database models for the campaign library."""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime, JSON, Text
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Campaign(SQLModel, table=True):
    """Previously received marketing campaign."""

    __tablename__ = "campaigns"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_name: str = Field(max_length=255, nullable=False, index=True)
    campaign: str = Field(max_length=255, nullable=False)
    channel: str = Field(max_length=120, nullable=False)
    sent_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    body: str = Field(sa_column=Column(Text, nullable=False))
    occurrences: int = Field(default=1, nullable=False)
    image_urls: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))


# Columns the listing endpoint may sort by
SORTABLE_COLUMNS = ("id", "company_name", "campaign", "channel", "sent_at", "occurrences")

# Columns covered by the listing text filter
SEARCHABLE_COLUMNS = ("company_name", "campaign", "channel", "body")


__all__ = [
    "Campaign",
    "SORTABLE_COLUMNS",
    "SEARCHABLE_COLUMNS",
    "utcnow",
]
