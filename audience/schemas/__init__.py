from audience.schemas.auth import LoginRequest, Token, TokenData, UserResponse, AuthMeResponse
from audience.schemas.subscriber import SubscriberSummary, SubscriberDetail
from audience.schemas.segment import (
    SegmentCondition,
    SegmentRuleSet,
    SegmentCreate,
    SegmentUpdate,
    SegmentResponse,
    SegmentListResponse,
    SegmentEvaluateRequest,
    SegmentEvaluateResponse,
    SegmentMembersResponse,
    SegmentFieldsResponse,
)
