"""
Segment API Endpoints

- Live evaluation of draft rules for the builder preview
- CRUD for saved segments with a cached subscriber count
- Paginated member preview for a saved segment
- Field catalogue for the builder menus
"""

from fastapi import APIRouter, Query, status
from typing import Optional
import logging

from audience.api.deps import DbSession, CurrentUser
from audience.exceptions import NotFoundError, ValidationError
from audience.schemas.subscriber import SubscriberSummary, SubscriberDetail
from audience.schemas.segment import (
    SegmentCreate,
    SegmentUpdate,
    SegmentResponse,
    SegmentListResponse,
    SegmentEvaluateRequest,
    SegmentEvaluateResponse,
    SegmentMembersResponse,
    SegmentFieldsResponse,
    FieldDefinitionResponse,
    OperatorDefinitionResponse,
)
from audience.services.segmentation import (
    SegmentService,
    SegmentNotFoundError,
    SegmentValidationError,
    field_definitions,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/evaluate", response_model=SegmentEvaluateResponse)
async def evaluate_segment(request: SegmentEvaluateRequest, db: DbSession, current_user: CurrentUser):
    """Evaluate draft rules without saving them."""
    result = await SegmentService(db).evaluate(request.rules.to_domain())
    return SegmentEvaluateResponse(
        count=result.count,
        subscribers=[SubscriberSummary.model_validate(s) for s in result.sample],
    )


@router.get("/fields", response_model=SegmentFieldsResponse)
async def get_available_fields(current_user: CurrentUser):
    """Fields and the operators legal for each of them."""
    return SegmentFieldsResponse(
        fields=[
            FieldDefinitionResponse(
                name=definition.name,
                label=definition.label,
                type=definition.field_type,
                description=definition.description,
                options=list(definition.options),
                operators=[
                    OperatorDefinitionResponse(value=op, label=op.label, multi_value=op.is_multi_value)
                    for op in definition.operators
                ],
                default_operator=definition.operators[0],
            )
            for definition in field_definitions()
        ]
    )


@router.get("", response_model=SegmentListResponse)
async def list_segments(db: DbSession, current_user: CurrentUser):
    segments = await SegmentService(db).list_segments()
    return SegmentListResponse(
        items=[SegmentResponse.model_validate(s) for s in segments],
        total=len(segments),
    )


@router.post("", response_model=SegmentResponse, status_code=status.HTTP_201_CREATED)
async def create_segment(data: SegmentCreate, db: DbSession, current_user: CurrentUser):
    try:
        segment = await SegmentService(db).create(
            name=data.name,
            rule_set=data.rules.to_domain(),
            description=data.description,
        )
    except SegmentValidationError as e:
        raise ValidationError(e.reason)
    return segment


@router.get("/{segment_id}", response_model=SegmentResponse)
async def get_segment(segment_id: str, db: DbSession, current_user: CurrentUser):
    """Get a segment with its subscriber count recalculated."""
    try:
        return await SegmentService(db).refresh(segment_id)
    except SegmentNotFoundError:
        raise NotFoundError("Segment", segment_id)


@router.put("/{segment_id}", response_model=SegmentResponse)
async def update_segment(segment_id: str, data: SegmentUpdate, db: DbSession, current_user: CurrentUser):
    try:
        return await SegmentService(db).update(
            segment_id,
            rule_set=data.rules.to_domain(),
            name=data.name,
            description=data.description,
        )
    except SegmentNotFoundError:
        raise NotFoundError("Segment", segment_id)
    except SegmentValidationError as e:
        raise ValidationError(e.reason)


@router.get("/{segment_id}/preview", response_model=SegmentMembersResponse)
async def preview_segment_members(
    segment_id: str,
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
):
    """Subscribers the saved segment matches right now."""
    try:
        members = await SegmentService(db).preview_members(segment_id, page=page, limit=limit)
    except SegmentNotFoundError:
        raise NotFoundError("Segment", segment_id)

    return SegmentMembersResponse(
        subscribers=[SubscriberDetail.model_validate(s) for s in members.subscribers],
        total=members.total,
        page=members.page,
        limit=members.limit,
        total_pages=members.total_pages,
    )


@router.delete("/{segment_id}")
async def delete_segment(segment_id: str, db: DbSession, current_user: CurrentUser):
    try:
        await SegmentService(db).delete(segment_id)
    except SegmentNotFoundError:
        raise NotFoundError("Segment", segment_id)
    return {"message": "Segment deleted"}
