"""
LinguaCards - Review API Router
Endpoints for due cards, review sessions and review statistics
"""
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from linguacards.api.deps import CurrentUserId, ReviewServiceDep
from linguacards.review.errors import (
    InvalidSessionAction,
    ReviewError,
    SchedulingUnavailable,
    SessionCompleted,
    SessionExpired,
    UserNotFound,
)
from linguacards.schemas.review import (
    AnswerRequest,
    CardPrompt,
    CardResponse,
    DueCardsResponse,
    IntervalPreviewResponse,
    PartialDecisionRequest,
    RateRequest,
    ReviewStepResponse,
    StatsResponse,
)
from linguacards.services.review import ReviewStep

router = APIRouter(prefix="/review", tags=["Review"])


_ERROR_STATUS = {
    UserNotFound: status.HTTP_404_NOT_FOUND,
    SessionExpired: status.HTTP_410_GONE,
    SessionCompleted: status.HTTP_409_CONFLICT,
    InvalidSessionAction: status.HTTP_409_CONFLICT,
    SchedulingUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def review_http_error(error: ReviewError) -> HTTPException:
    """Map a review error to the HTTP error returned to the caller."""
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


def to_step_response(step: ReviewStep) -> ReviewStepResponse:
    session = step.session
    card = None
    if step.card is not None:
        card = CardPrompt(
            id=step.card.id,
            front=step.card.front,
            back=step.card.back if step.answer_visible else None,
        )

    return ReviewStepResponse(
        session_id=session.id,
        mode=session.mode,
        state=session.state,
        position=session.position,
        total=session.total,
        knew_count=session.knew_count,
        did_not_know_count=session.did_not_know_count,
        is_complete=step.is_complete,
        card=card,
        graded_card=CardResponse.model_validate(step.graded_card) if step.graded_card else None,
        match=step.match,
        rating=step.rating,
    )


@router.get("/due", response_model=DueCardsResponse)
async def get_due_cards(
    user_id: CurrentUserId,
    service: ReviewServiceDep,
    limit: Optional[int] = Query(None, ge=0, le=500),
):
    """
    Get the caller's due cards, oldest due first.

    Without `limit`, returns the recommended batch: what is left of the daily
    goal, but at least the minimum batch size.
    """
    try:
        cards = await service.get_due_cards(user_id, limit=limit)
    except ReviewError as e:
        raise review_http_error(e)

    total_due = await service.selector.count_due(user_id)
    return DueCardsResponse(
        items=[CardResponse.model_validate(card) for card in cards],
        total_due=total_due,
    )


@router.post(
    "/sessions",
    response_model=ReviewStepResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_session(user_id: CurrentUserId, service: ReviewServiceDep):
    """Start a review session over the caller's due cards, replacing any current one."""
    try:
        step = await service.start_session(user_id)
    except ReviewError as e:
        raise review_http_error(e)

    if step is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No cards due for review",
        )
    return to_step_response(step)


@router.get("/sessions/current", response_model=ReviewStepResponse)
async def get_current_session(user_id: CurrentUserId, service: ReviewServiceDep):
    try:
        return to_step_response(await service.get_current(user_id))
    except ReviewError as e:
        raise review_http_error(e)


@router.post("/sessions/current/reveal", response_model=ReviewStepResponse)
async def reveal_answer(user_id: CurrentUserId, service: ReviewServiceDep):
    """Show the answer of the current card (reveal mode)."""
    try:
        return to_step_response(await service.reveal(user_id))
    except ReviewError as e:
        raise review_http_error(e)


@router.post("/sessions/current/rate", response_model=ReviewStepResponse)
async def rate_card(data: RateRequest, user_id: CurrentUserId, service: ReviewServiceDep):
    """Rate the current card after seeing its answer (reveal mode)."""
    try:
        return to_step_response(await service.rate(user_id, data.rating))
    except ReviewError as e:
        raise review_http_error(e)


@router.post("/sessions/current/answer", response_model=ReviewStepResponse)
async def submit_answer(data: AnswerRequest, user_id: CurrentUserId, service: ReviewServiceDep):
    """
    Submit a typed answer (typing mode).

    A partial match leaves the session in `awaiting_partial_decision`; settle
    it with `/sessions/current/partial`.
    """
    try:
        return to_step_response(await service.submit_answer(user_id, data.text))
    except ReviewError as e:
        raise review_http_error(e)


@router.post("/sessions/current/partial", response_model=ReviewStepResponse)
async def resolve_partial(
    data: PartialDecisionRequest,
    user_id: CurrentUserId,
    service: ReviewServiceDep,
):
    """Count a partial answer as correct (GOOD) or incorrect (AGAIN)."""
    try:
        return to_step_response(await service.resolve_partial(user_id, data.count_as_correct))
    except ReviewError as e:
        raise review_http_error(e)


@router.post("/sessions/current/dont-remember", response_model=ReviewStepResponse)
async def dont_remember(user_id: CurrentUserId, service: ReviewServiceDep):
    try:
        return to_step_response(await service.dont_remember(user_id))
    except ReviewError as e:
        raise review_http_error(e)


@router.get("/cards/{card_id}/intervals", response_model=IntervalPreviewResponse)
async def get_interval_preview(
    card_id: uuid.UUID,
    user_id: CurrentUserId,
    service: ReviewServiceDep,
):
    """Next review interval for each possible rating of a card."""
    try:
        previews = await service.get_interval_preview(user_id, card_id)
    except ReviewError as e:
        raise review_http_error(e)

    if previews is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Card not found",
        )
    return IntervalPreviewResponse(
        card_id=card_id,
        intervals={rating.name.lower(): label for rating, label in previews.items()},
    )


@router.get("/stats", response_model=StatsResponse)
async def get_stats(user_id: CurrentUserId, service: ReviewServiceDep):
    """Today's progress against the daily goal, card counts and streaks."""
    try:
        return StatsResponse(**await service.get_stats(user_id))
    except ReviewError as e:
        raise review_http_error(e)
