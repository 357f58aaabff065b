"""
LinguaCards - Review API Tests
"""
import uuid

import pytest
from httpx import AsyncClient

HEADERS = {"X-User-Id": "1001"}


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test the health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_missing_user_header(client: AsyncClient):
    response = await client.get("/api/v1/review/due")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_user(client: AsyncClient):
    response = await client.get("/api/v1/review/stats", headers={"X-User-Id": "404"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_due_cards(client: AsyncClient, make_user, make_card):
    await make_user(1001)
    card = await make_card(front="собака", back="dog")

    response = await client.get("/api/v1/review/due", headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["total_due"] == 1
    assert data["items"][0]["id"] == str(card.id)
    assert data["items"][0]["back"] == "dog"


@pytest.mark.asyncio
async def test_start_session_with_nothing_due(client: AsyncClient, make_user):
    await make_user(1001)

    response = await client.post("/api/v1/review/sessions", headers=HEADERS)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_current_session_without_session(client: AsyncClient, make_user):
    await make_user(1001)

    response = await client.get("/api/v1/review/sessions/current", headers=HEADERS)
    assert response.status_code == 410


@pytest.mark.asyncio
async def test_reveal_mode_session(client: AsyncClient, make_user, make_card):
    await make_user(1001)
    card = await make_card(front="кошка", back="cat")

    response = await client.post("/api/v1/review/sessions", headers=HEADERS)
    assert response.status_code == 201
    data = response.json()
    assert data["state"] == "awaiting_reveal"
    assert data["total"] == 1
    assert data["card"]["front"] == "кошка"
    assert data["card"]["back"] is None

    # Rating before the answer is shown
    response = await client.post(
        "/api/v1/review/sessions/current/rate", headers=HEADERS, json={"rating": 3}
    )
    assert response.status_code == 409

    response = await client.post("/api/v1/review/sessions/current/reveal", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["card"]["back"] == "cat"

    response = await client.post(
        "/api/v1/review/sessions/current/rate", headers=HEADERS, json={"rating": 3}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["is_complete"] is True
    assert data["knew_count"] == 1
    assert data["rating"] == 3
    assert data["graded_card"]["id"] == str(card.id)
    assert data["graded_card"]["repetitions"] == 1
    assert data["graded_card"]["interval_days"] == 1

    response = await client.get("/api/v1/review/sessions/current", headers=HEADERS)
    assert response.status_code == 410


@pytest.mark.asyncio
async def test_invalid_rating_is_rejected(client: AsyncClient, make_user, make_card):
    await make_user(1001)
    await make_card()
    await client.post("/api/v1/review/sessions", headers=HEADERS)
    await client.post("/api/v1/review/sessions/current/reveal", headers=HEADERS)

    response = await client.post(
        "/api/v1/review/sessions/current/rate", headers=HEADERS, json={"rating": 7}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_typing_mode_partial_answer(client: AsyncClient, make_user, make_card):
    await make_user(1001, review_mode="typing")
    await make_card(back="cat")

    response = await client.post("/api/v1/review/sessions", headers=HEADERS)
    assert response.json()["state"] == "awaiting_typed_answer"

    response = await client.post(
        "/api/v1/review/sessions/current/answer", headers=HEADERS, json={"text": "ct"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["match"] == "partial"
    assert data["rating"] == 2
    assert data["state"] == "awaiting_partial_decision"
    assert data["card"]["back"] == "cat"

    response = await client.post(
        "/api/v1/review/sessions/current/partial",
        headers=HEADERS,
        json={"count_as_correct": True},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["rating"] == 3
    assert data["is_complete"] is True


@pytest.mark.asyncio
async def test_typing_mode_dont_remember(client: AsyncClient, make_user, make_card):
    await make_user(1001, review_mode="typing")
    await make_card()
    await make_card()
    await client.post("/api/v1/review/sessions", headers=HEADERS)

    response = await client.post("/api/v1/review/sessions/current/dont-remember", headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["rating"] == 1
    assert data["did_not_know_count"] == 1
    assert data["position"] == 2
    assert data["state"] == "awaiting_typed_answer"


@pytest.mark.asyncio
async def test_interval_preview(client: AsyncClient, make_user, make_card):
    await make_user(1001)
    card = await make_card()

    response = await client.get(f"/api/v1/review/cards/{card.id}/intervals", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["intervals"] == {
        "again": "1m",
        "hard": "1m",
        "good": "1d",
        "easy": "1d",
    }

    response = await client.get(f"/api/v1/review/cards/{uuid.uuid4()}/intervals", headers=HEADERS)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stats_after_review(client: AsyncClient, make_user, make_card):
    await make_user(1001, daily_goal=5)
    await make_card()

    response = await client.get("/api/v1/review/stats", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["reviewed_today"] == 0

    await client.post("/api/v1/review/sessions", headers=HEADERS)
    await client.post("/api/v1/review/sessions/current/reveal", headers=HEADERS)
    await client.post("/api/v1/review/sessions/current/rate", headers=HEADERS, json={"rating": 4})

    response = await client.get("/api/v1/review/stats", headers=HEADERS)
    data = response.json()
    assert data["reviewed_today"] == 1
    assert data["daily_goal"] == 5
    assert data["total_cards"] == 1
    assert data["current_streak"] == 0
    assert len(data["weekly_history"]) == 1
    assert data["weekly_history"][0]["cards_reviewed"] == 1
