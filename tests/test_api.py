"""Tests for the HTTP adapter."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from factories import OWNER, STRANGER, STYLIST, TEST_SETTINGS, RecordingDispatcher
from wardrobe_share.api.main import create_app
from wardrobe_share.cache import InMemoryCache
from wardrobe_share.db import models
from wardrobe_share.db.session import build_session_factory, init_db
from wardrobe_share.services.container import build_services
from wardrobe_share.services.principal import Principal


def _headers(principal: Principal) -> dict[str, str]:
    return {"X-User-Id": principal.id, "X-User-Email": principal.email}


@pytest.fixture
def client(tmp_path: Path) -> Iterator[TestClient]:
    # Connections are never reused, so the seeding loop and the app loop stay apart.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)
    session_factory = build_session_factory(engine)

    async def prepare() -> None:
        await init_db(engine)
        async with session_factory() as session:
            session.add_all(
                [
                    models.Garment(id="shirt", owner_id=OWNER.id, name="RedShirt", type="shirt", color="red"),
                    models.Garment(id="jeans", owner_id=OWNER.id, name="BlueJeans", type="jeans", color="blue"),
                    models.Garment(
                        id="jacket",
                        owner_id=OWNER.id,
                        name="BlackJacket",
                        type="jacket",
                        color="black",
                    ),
                ],
            )
            await session.commit()

    asyncio.run(prepare())
    services = build_services(
        TEST_SETTINGS,
        session_factory,
        cache=InMemoryCache(),
        dispatcher=RecordingDispatcher(),
    )
    with TestClient(create_app(services)) as test_client:
        yield test_client


def _grant(client: TestClient) -> None:
    invite = client.post("/shares/invite", json={"email": STYLIST.email}, headers=_headers(OWNER))
    assert invite.status_code == 201
    code = invite.json()["inviteCode"]
    accepted = client.post("/shares/accept", json={"code": code}, headers=_headers(STYLIST))
    assert accepted.status_code == 200


def test_health_returns_ok(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_identity_is_unauthorized(client: TestClient) -> None:
    response = client.get("/shares")

    assert response.status_code == 401


def test_invite_flow_and_shares_listing(client: TestClient) -> None:
    _grant(client)

    owner_view = client.get("/shares", headers=_headers(OWNER)).json()
    stylist_view = client.get("/shares", headers=_headers(STYLIST)).json()

    assert owner_view["outgoing"][0]["status"] == "accepted"
    assert owner_view["outgoing"][0]["collaboratorId"] == STYLIST.id
    assert stylist_view["incoming"][0]["ownerId"] == OWNER.id


def test_accept_with_wrong_email_is_forbidden(client: TestClient) -> None:
    invite = client.post("/shares/invite", json={"email": STYLIST.email}, headers=_headers(OWNER))
    response = client.post(
        "/shares/accept",
        json={"code": invite.json()["inviteCode"]},
        headers=_headers(STRANGER),
    )

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "forbidden"


def test_suggestion_without_access_is_forbidden(client: TestClient) -> None:
    response = client.post(
        "/suggestions",
        json={"ownerId": OWNER.id, "garmentIds": ["shirt"]},
        headers=_headers(STRANGER),
    )

    assert response.status_code == 403


def test_suggestion_with_foreign_garment_is_bad_request(client: TestClient) -> None:
    _grant(client)

    response = client.post(
        "/suggestions",
        json={"ownerId": OWNER.id, "garmentIds": ["shirt", "unknown"]},
        headers=_headers(STYLIST),
    )

    assert response.status_code == 400


def test_suggestion_lifecycle(client: TestClient) -> None:
    _grant(client)
    created = client.post(
        "/suggestions",
        json={"ownerId": OWNER.id, "garmentIds": ["shirt", "jeans"], "title": "Weekend"},
        headers=_headers(STYLIST),
    )
    assert created.status_code == 201
    suggestion_id = created.json()["id"]

    comment = client.post(
        f"/suggestions/{suggestion_id}/comments",
        json={"message": "Thoughts?"},
        headers=_headers(STYLIST),
    )
    rejected = client.post(
        f"/suggestions/{suggestion_id}/transition",
        json={"action": "reject", "feedback": "Too bright"},
        headers=_headers(OWNER),
    )
    second = client.post(
        f"/suggestions/{suggestion_id}/transition",
        json={"action": "accept"},
        headers=_headers(OWNER),
    )
    thread = client.get(f"/suggestions/{suggestion_id}/comments", headers=_headers(OWNER))
    stats = client.get("/suggestions/stats", headers=_headers(STYLIST))

    assert comment.status_code == 201
    assert comment.json()["role"] == "stylist"
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["feedback"] == "Too bright"
    assert second.status_code == 404
    assert [item["message"] for item in thread.json()] == ["Thoughts?"]
    assert stats.json()["totalCreated"] == 1


def test_unknown_transition_is_bad_request(client: TestClient) -> None:
    response = client.post(
        "/suggestions/anything/transition",
        json={"action": "approve"},
        headers=_headers(OWNER),
    )

    assert response.status_code == 400


def test_collection_share_token_round_trip(client: TestClient) -> None:
    created = client.post(
        "/collections",
        json={"name": "Capsule", "garmentIds": ["jeans", "shirt"], "permissionLevel": "viewer"},
        headers=_headers(OWNER),
    )
    assert created.status_code == 201
    body = created.json()

    shared = client.get(f"/collections/shared/{body['shareToken']}")
    invited = client.post(
        f"/collections/{body['id']}/invite",
        json={"emails": [STRANGER.email]},
        headers=_headers(OWNER),
    )
    invited_list = client.get("/collections/invited", headers=_headers(STRANGER))

    assert shared.status_code == 200
    assert [garment["id"] for garment in shared.json()["garments"]] == ["jeans", "shirt"]
    assert invited.json()["invitedEmails"] == [STRANGER.email]
    assert [item["id"] for item in invited_list.json()] == [body["id"]]


def test_collection_with_foreign_garment_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/collections",
        json={"name": "Stolen", "garmentIds": ["shirt"]},
        headers=_headers(STRANGER),
    )

    assert response.status_code == 400


def test_recommendation_endpoint(client: TestClient) -> None:
    response = client.post(
        "/recommendations",
        json={"ownerId": OWNER.id, "occasion": "casual"},
        headers=_headers(OWNER),
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["confidence"] == 90
    assert payload["recommendation"]["outerwear"] is None
    assert payload["recommendation"]["top"] == "shirt"


def test_planner_endpoints(client: TestClient) -> None:
    created = client.post(
        "/planner",
        json={"garmentIds": ["shirt", "jeans"], "plannedAt": "2026-06-01T09:00:00Z"},
        headers=_headers(OWNER),
    )
    listed = client.get(
        "/planner",
        params={"from": "2026-06-01T00:00:00Z", "to": "2026-06-07T23:59:59Z"},
        headers=_headers(OWNER),
    )

    assert created.status_code == 201
    assert created.json()["status"] == "accepted"
    assert [item["id"] for item in listed.json()] == [created.json()["id"]]


def test_recommendation_history_counts_wardrobe(client: TestClient) -> None:
    own = client.get("/recommendations/history", headers=_headers(OWNER))
    foreign = client.get(
        "/recommendations/history",
        params={"ownerId": OWNER.id},
        headers=_headers(STRANGER),
    )

    assert own.status_code == 200
    assert own.json() == {"totalItems": 3, "availableItems": 3, "wornItems": 0, "needsCleaningItems": 0}
    assert foreign.status_code == 403


def test_foreign_suggestion_reads_as_missing(client: TestClient) -> None:
    _grant(client)
    created = client.post(
        "/suggestions",
        json={"ownerId": OWNER.id, "garmentIds": ["shirt"]},
        headers=_headers(STYLIST),
    )

    foreign = client.get(f"/suggestions/{created.json()['id']}", headers=_headers(STRANGER))
    missing = client.get("/suggestions/nope", headers=_headers(STRANGER))

    assert foreign.status_code == missing.status_code == 404
    assert foreign.json() == missing.json()
