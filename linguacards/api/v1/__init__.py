"""LinguaCards - API v1 Router."""
from fastapi import APIRouter

from linguacards.api.v1.review import router as review_router

api_router = APIRouter()

api_router.include_router(review_router)
