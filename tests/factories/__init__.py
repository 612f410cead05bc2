"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .user import UserFactory, InactiveUserFactory
from .subscriber import (
    SubscriberFactory,
    InstagramSubscriberFactory,
    NeverEmailedSubscriberFactory,
    UnsubscribedSubscriberFactory,
    days_ago,
)

__all__ = [
    "UserFactory",
    "InactiveUserFactory",
    "SubscriberFactory",
    "InstagramSubscriberFactory",
    "NeverEmailedSubscriberFactory",
    "UnsubscribedSubscriberFactory",
    "days_ago",
]
