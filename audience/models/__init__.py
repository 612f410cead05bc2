# Import all models so they register with SQLAlchemy metadata
from audience.models.user import User
from audience.models.subscriber import Subscriber, SubscriberTag
from audience.models.segment import Segment

__all__ = [
    "User",
    "Subscriber",
    "SubscriberTag",
    "Segment",
]
