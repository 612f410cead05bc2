"""
Segment Service

Persists segments and keeps their cached subscriber count in step with the
rule set at save time. Counts are recomputed synchronously by the evaluator
on create, update and explicit refresh.

Concurrent saves of the same segment are last-write-wins; there is no
version column. The cached ``subscriber_count`` is a snapshot, so campaign
targeting should call ``resolve_for_send`` instead of trusting it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from audience.config import settings
from audience.models.segment import Segment
from audience.models.subscriber import Subscriber
from audience.services.segmentation.errors import SegmentNotFoundError
from audience.services.segmentation.evaluator import EvaluationResult, evaluate, iter_matches, utcnow
from audience.services.segmentation.rules import RuleSet, validate_segment

logger = logging.getLogger(__name__)


@dataclass
class SegmentMembersPage:
    """One page of subscribers currently matching a saved segment."""

    subscribers: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class SegmentService:
    """Segment persistence backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def validate(name: Optional[str], rule_set: RuleSet) -> str:
        """Raise SegmentValidationError unless the definition can be saved."""
        return validate_segment(name, rule_set)

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def _population_query(self):
        # Stable order keeps preview samples deterministic
        return (
            select(Subscriber)
            .where(Subscriber.subscribed == True)
            .order_by(Subscriber.subscribed_at, Subscriber.id)
        )

    async def evaluate(self, rule_set: RuleSet, sample_size: Optional[int] = None) -> EvaluationResult:
        """Evaluate a rule set against all currently subscribed subscribers."""
        if sample_size is None:
            sample_size = settings.SEGMENT_PREVIEW_SAMPLE_SIZE
        if not rule_set.is_evaluable:
            return EvaluationResult(evaluated_at=utcnow())

        result = await self.db.execute(self._population_query())
        return evaluate(rule_set, result.scalars(), sample_size=sample_size)

    # =========================================================================
    # CRUD
    # =========================================================================

    async def list_segments(self) -> List[Segment]:
        result = await self.db.execute(select(Segment).order_by(Segment.updated_at.desc()))
        return list(result.scalars().all())

    async def get(self, segment_id: str) -> Optional[Segment]:
        result = await self.db.execute(select(Segment).where(Segment.id == segment_id))
        return result.scalar_one_or_none()

    async def _require(self, segment_id: str) -> Segment:
        segment = await self.get(segment_id)
        if segment is None:
            raise SegmentNotFoundError(segment_id)
        return segment

    async def create(self, name: str, rule_set: RuleSet, description: Optional[str] = None) -> Segment:
        """
        Validate, evaluate and store a new segment.

        Raises:
            SegmentValidationError: name is blank or no condition has a value
        """
        clean_name = self.validate(name, rule_set)
        evaluation = await self.evaluate(rule_set)

        now = utcnow()
        segment = Segment(
            name=clean_name,
            description=(description or "").strip() or None,
            rules=rule_set.to_dict(),
            subscriber_count=evaluation.count,
            last_calculated_at=evaluation.evaluated_at or now,
            created_at=now,
            updated_at=now,
        )
        self.db.add(segment)
        await self.db.commit()
        await self.db.refresh(segment)

        logger.info(
            "Created segment %s (%s): %d subscribers, %d conditions",
            segment.id, clean_name, evaluation.count, len(rule_set.conditions),
        )
        return segment

    async def update(
        self,
        segment_id: str,
        rule_set: RuleSet,
        name: str,
        description: Optional[str] = None,
    ) -> Segment:
        """
        Replace a segment's definition and recompute its cached count.

        Raises:
            SegmentNotFoundError: no segment with this id
            SegmentValidationError: name is blank or no condition has a value
        """
        segment = await self._require(segment_id)
        clean_name = self.validate(name, rule_set)
        evaluation = await self.evaluate(rule_set)

        segment.name = clean_name
        segment.description = (description or "").strip() or None
        segment.rules = rule_set.to_dict()
        segment.subscriber_count = evaluation.count
        segment.last_calculated_at = evaluation.evaluated_at
        segment.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(segment)

        logger.info("Updated segment %s: %d subscribers", segment.id, evaluation.count)
        return segment

    async def delete(self, segment_id: str) -> None:
        """Remove the segment row; campaigns referencing it are left untouched."""
        segment = await self._require(segment_id)
        logger.info("Deleting segment %s (%s)", segment_id, segment.name)
        await self.db.delete(segment)
        await self.db.commit()

    # =========================================================================
    # CACHE & CONSUMERS
    # =========================================================================

    async def refresh(self, segment_id: str) -> Segment:
        """Recompute the cached subscriber count from the stored rules."""
        segment = await self._require(segment_id)
        evaluation = await self.evaluate(RuleSet.from_dict(segment.rules))

        segment.subscriber_count = evaluation.count
        segment.last_calculated_at = evaluation.evaluated_at
        await self.db.commit()
        await self.db.refresh(segment)
        return segment

    async def preview_members(self, segment_id: str, page: int = 1, limit: Optional[int] = None) -> SegmentMembersPage:
        """Page through the subscribers a saved segment matches right now."""
        limit = limit or settings.SEGMENT_MEMBERS_PAGE_SIZE
        segment = await self._require(segment_id)
        rule_set = RuleSet.from_dict(segment.rules)

        result = await self.db.execute(self._population_query())
        matching = list(iter_matches(rule_set, result.scalars()))

        start = (page - 1) * limit
        return SegmentMembersPage(
            subscribers=matching[start:start + limit],
            total=len(matching),
            page=page,
            limit=limit,
        )

    async def resolve_for_send(self, segment_id: str) -> Optional[EvaluationResult]:
        """
        Live audience for campaign targeting.

        Returns None when the segment has been deleted, meaning the campaign
        can no longer target it.
        """
        segment = await self.get(segment_id)
        if segment is None:
            logger.warning("Segment %s no longer exists; audience not targetable", segment_id)
            return None
        return await self.evaluate(RuleSet.from_dict(segment.rules))
