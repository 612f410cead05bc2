"""
Subscriber vocabulary endpoints used by the segment builder.
"""

from fastapi import APIRouter
from sqlalchemy import select

from audience.api.deps import DbSession, CurrentUser
from audience.models.subscriber import Subscriber, SubscriberTag

router = APIRouter()


@router.get("/tags", response_model=list[str])
async def list_tags(db: DbSession, current_user: CurrentUser):
    """Known tag names, sorted."""
    result = await db.execute(select(SubscriberTag.name).order_by(SubscriberTag.name))
    return list(result.scalars().all())


@router.get("/sources", response_model=list[str])
async def list_sources(db: DbSession, current_user: CurrentUser):
    """Distinct signup sources across all subscribers, sorted."""
    result = await db.execute(
        select(Subscriber.source)
        .where(Subscriber.source.isnot(None))
        .distinct()
        .order_by(Subscriber.source)
    )
    return list(result.scalars().all())
