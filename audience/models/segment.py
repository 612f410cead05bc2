"""
Segment Model

A segment is a named rule set plus the subscriber count it matched the last
time it was calculated. Campaigns refer to segments by id only; deleting a
segment leaves those references dangling rather than cascading.
"""

from uuid import uuid4

from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Index
from sqlalchemy.sql import func

from audience.database import Base


class Segment(Base):
    """Saved subscriber segment."""

    __tablename__ = "segments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text)

    # Rule set JSON, stored exactly as submitted:
    # {"match": "all", "conditions": [{"field": "source", "operator": "equals", "value": "instagram"}]}
    rules = Column(JSON, nullable=False)

    # Cached evaluation; may drift as subscriber attributes change
    subscriber_count = Column(Integer, default=0)
    last_calculated_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # Bumped by SegmentService on definition changes only, not on count refresh
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("ix_segments_name", "name"),)

    def __repr__(self):
        return f"<Segment {self.name}>"
