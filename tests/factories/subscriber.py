"""
Subscriber test factory.

Produces plain dicts: ``Subscriber(**SubscriberFactory())`` for database
tests, ``SimpleNamespace(**SubscriberFactory())`` for evaluator tests.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import factory
from faker import Faker

fake = Faker()

SOURCES = ["website", "instagram", "podcast", "referral", "import"]
LEVELS = ["highly_engaged", "engaged", "cold", "at_risk", "churned", "new"]


def days_ago(days: float, now: datetime | None = None) -> datetime:
    return (now or datetime.now(timezone.utc)) - timedelta(days=days)


class SubscriberFactory(factory.Factory):
    """
    Factory for generating Subscriber test data.

    Usage:
        subscriber = SubscriberFactory()
        subscriber = SubscriberFactory(source="instagram", tags=["vip"])
        subscribers = SubscriberFactory.create_batch(20)
    """

    class Meta:
        model = dict

    id = factory.LazyFunction(lambda: str(uuid4()))
    email = factory.Sequence(lambda n: f"subscriber{n}@{fake.domain_name()}")
    name = factory.LazyFunction(fake.name)
    source = factory.LazyFunction(lambda: fake.random_element(SOURCES))
    tags = factory.LazyFunction(list)
    subscribed = True
    # Whole days plus an hour so day-boundary rounding is unambiguous
    subscribed_at = factory.LazyFunction(lambda: days_ago(fake.random_int(30, 365) + 1 / 24))
    emails_received = factory.LazyFunction(lambda: fake.random_int(0, 50))
    engagement_score = factory.LazyFunction(lambda: fake.random_int(0, 100))
    engagement_level = factory.LazyFunction(lambda: fake.random_element(LEVELS))
    last_emailed_at = factory.LazyFunction(lambda: days_ago(fake.random_int(1, 20) + 1 / 24))
    last_opened_at = None


class InstagramSubscriberFactory(SubscriberFactory):
    source = "instagram"


class NeverEmailedSubscriberFactory(SubscriberFactory):
    """Subscriber that has not received or opened anything yet."""

    emails_received = 0
    engagement_level = "new"
    last_emailed_at = None
    last_opened_at = None


class UnsubscribedSubscriberFactory(SubscriberFactory):
    subscribed = False
    unsubscribed_at = factory.LazyFunction(lambda: days_ago(1))
