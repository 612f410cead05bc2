from pydantic import BaseModel
from typing import Optional


class SubscriberSummary(BaseModel):
    """Subscriber row shown in segment previews."""

    id: str
    email: str
    name: Optional[str] = None
    engagement_level: Optional[str] = None

    class Config:
        from_attributes = True


class SubscriberDetail(SubscriberSummary):
    """Subscriber row on the saved segment member list."""

    source: Optional[str] = None
    tags: Optional[list[str]] = None
    engagement_score: Optional[int] = None
