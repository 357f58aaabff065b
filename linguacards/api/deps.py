"""
LinguaCards - API Dependencies
FastAPI dependencies for the caller's identity and the review services
"""
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from linguacards.core.database import get_db
from linguacards.review.registry import SessionRegistry, session_registry
from linguacards.services.repository import SqlReviewRepository
from linguacards.services.review import ReviewService


async def get_current_user_id(
    x_user_id: Annotated[int | None, Header(alias="X-User-Id")] = None,
) -> int:
    """
    Get the caller's user id.

    Authentication is done by the transport in front of this service, which
    forwards the learner's id in the `X-User-Id` header.

    Raises:
        HTTPException: If the header is missing
    """
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id


def get_session_registry() -> SessionRegistry:
    return session_registry


async def get_review_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> ReviewService:
    return ReviewService(SqlReviewRepository(db), registry=registry)


# Type aliases for common dependencies
CurrentUserId = Annotated[int, Depends(get_current_user_id)]
ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]
