"""
Subscriber Models

Subscribers are created by signup and import flows and updated by
engagement tracking; the segmentation engine only reads them.
"""

from uuid import uuid4

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON, Index
from sqlalchemy.sql import func

from audience.database import Base


class Subscriber(Base):
    """Newsletter subscriber."""

    __tablename__ = "subscribers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255))
    first_name = Column(String(100))
    last_name = Column(String(100))
    source = Column(String(100), nullable=False, default="website")
    tags = Column(JSON, default=list)  # ["vip", "workshop-2026"]

    subscribed = Column(Boolean, nullable=False, default=True)
    subscribed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    unsubscribed_at = Column(DateTime(timezone=True))

    # Engagement tracking
    last_emailed_at = Column(DateTime(timezone=True))
    emails_received = Column(Integer, default=0)
    engagement_score = Column(Integer, default=0)
    engagement_level = Column(String(20), default="new")  # highly_engaged, engaged, cold, at_risk, churned, new
    last_opened_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_subscribers_subscribed", "subscribed"),
        Index("ix_subscribers_source", "source"),
        Index("ix_subscribers_engagement_level", "engagement_level"),
    )

    def __repr__(self):
        return f"<Subscriber {self.email}>"


class SubscriberTag(Base):
    """Tag vocabulary offered by the segment builder."""

    __tablename__ = "subscriber_tags"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
