from fastapi import APIRouter
from audience.api.v2 import auth, segments, subscribers

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(segments.router, prefix="/segments", tags=["segments"])
api_router.include_router(subscribers.router, prefix="/subscribers", tags=["subscribers"])
