import pytest

from planit.core.cache import RedisCache
from tests.conftest import ALICE, BOB, CAROL, OUTSIDER, OWNER, auth_headers


@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_requests_need_a_valid_token(api_client, trip):
    response = await api_client.get(f"/trips/{trip}/activities")
    assert response.status_code in (401, 403)

    response = await api_client.get(
        f"/trips/{trip}/activities", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_trip_makes_creator_owner(api_client, trip):
    response = await api_client.post(
        "/trips",
        json={
            "name": "Porto",
            "destination": "Porto",
            "start_date": "2026-06-10",
            "end_date": "2026-06-12",
            "currency": "eur",
        },
        headers=auth_headers(BOB),
    )
    assert response.status_code == 201
    created = response.json()
    assert created["currency"] == "EUR"
    assert created["user_id"] == BOB

    response = await api_client.get(f"/trips/{created['id']}/participants", headers=auth_headers(BOB))
    participants = response.json()["participants"]
    assert [(p["user_id"], p["is_owner"]) for p in participants] == [(BOB, True)]


@pytest.mark.asyncio
async def test_get_trip_is_cached(api_client, trip, fake_redis):
    response = await api_client.get(f"/trips/{trip}", headers=auth_headers(ALICE))
    assert response.status_code == 200
    assert response.json()["destination"] == "Lisbon"
    assert await RedisCache(fake_redis).get(f"trips:id:{trip}") is not None

    response = await api_client.get(f"/trips/{trip}", headers=auth_headers(OUTSIDER))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_only_owner_adds_participants(api_client, trip):
    response = await api_client.post(
        f"/trips/{trip}/participants", json={"user_id": OUTSIDER}, headers=auth_headers(BOB)
    )
    assert response.status_code == 403

    response = await api_client.post(
        f"/trips/{trip}/participants", json={"user_id": OUTSIDER}, headers=auth_headers(OWNER)
    )
    assert response.status_code == 201

    response = await api_client.post(
        f"/trips/{trip}/participants", json={"user_id": OUTSIDER}, headers=auth_headers(OWNER)
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_activity_voting_flow(api_client, trip, feed):
    response = await api_client.post(
        f"/trips/{trip}/activities",
        json={"title": "Fado night", "cost": "60", "category": "other", "require_voting": True},
        headers=auth_headers(ALICE),
    )
    assert response.status_code == 201
    activity = response.json()
    assert activity["status"] == "voting"
    activity_id = activity["id"]

    for user_id, value in ((ALICE, True), (BOB, True), (CAROL, False), (BOB, True)):
        response = await api_client.post(
            f"/trips/{trip}/activities/{activity_id}/vote",
            json={"value": value},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 200

    response = await api_client.get(f"/trips/{trip}/activities/{activity_id}/votes", headers=auth_headers(OWNER))
    assert len(response.json()) == 3

    response = await api_client.get(f"/trips/{trip}/activities", headers=auth_headers(OWNER))
    board = response.json()
    card = board["cards"][0]
    assert card["tally"] == {"yes": 2, "no": 1, "total": 3, "participants": 4, "percentage": 50}
    assert card["cost_per_person_display"] == "€15.00"
    assert card["can_finalize"] is True

    response = await api_client.post(
        f"/trips/{trip}/activities/{activity_id}/finalize", headers=auth_headers(ALICE)
    )
    assert response.status_code == 403

    response = await api_client.post(
        f"/trips/{trip}/activities/{activity_id}/finalize", headers=auth_headers(OWNER)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert feed.published[-1].payload["status"] == "confirmed"

    response = await api_client.post(
        f"/trips/{trip}/activities/{activity_id}/vote", json={"value": False}, headers=auth_headers(CAROL)
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_finalize_without_votes_conflicts(api_client, voting_activity, trip):
    response = await api_client.post(
        f"/trips/{trip}/activities/{voting_activity}/finalize", headers=auth_headers(OWNER)
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_board_query_parameters(api_client, voting_activity, trip):
    response = await api_client.get(
        f"/trips/{trip}/activities",
        params={"search": "TRAM", "status": "voting", "group_by_date": "true"},
        headers=auth_headers(BOB),
    )
    board = response.json()
    assert board["total"] == 1
    assert [group["key"] for group in board["groups"]] == ["2026-05-02"]

    response = await api_client.get(
        f"/trips/{trip}/activities", params={"status": "archived"}, headers=auth_headers(BOB)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_edit_and_delete_permissions(api_client, voting_activity, trip):
    url = f"/trips/{trip}/activities/{voting_activity}"

    response = await api_client.patch(url, json={"title": "Bob's tram"}, headers=auth_headers(BOB))
    assert response.status_code == 403

    response = await api_client.patch(url, json={"location": "Martim Moniz"}, headers=auth_headers(ALICE))
    assert response.status_code == 200
    assert response.json()["location"] == "Martim Moniz"

    response = await api_client.delete(url, headers=auth_headers(OUTSIDER))
    assert response.status_code == 404

    response = await api_client.delete(url, headers=auth_headers(OWNER))
    assert response.status_code == 204
    response = await api_client.get(f"/trips/{trip}/activities", headers=auth_headers(OWNER))
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_invalid_activity_body(api_client, trip):
    response = await api_client.post(
        f"/trips/{trip}/activities", json={"title": "x", "cost": "-5"}, headers=auth_headers(ALICE)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("patch", [{"title": None}, {"status": None}, {"category": None}])
async def test_patch_cannot_null_required_columns(api_client, voting_activity, trip, patch):
    response = await api_client.patch(
        f"/trips/{trip}/activities/{voting_activity}", json=patch, headers=auth_headers(OWNER)
    )
    assert response.status_code == 422

    response = await api_client.get(f"/trips/{trip}/activities", headers=auth_headers(OWNER))
    card = response.json()["cards"][0]
    assert card["activity"]["title"] == "Tram 28 tour"
    assert card["activity"]["status"] == "voting"


@pytest.mark.asyncio
async def test_patch_may_clear_optional_columns(api_client, voting_activity, trip):
    response = await api_client.patch(
        f"/trips/{trip}/activities/{voting_activity}", json={"cost": None}, headers=auth_headers(ALICE)
    )
    assert response.status_code == 200
    assert response.json()["cost"] is None


@pytest.mark.asyncio
async def test_votes_carry_voter_profile(api_client, voting_activity, trip):
    await api_client.post(
        f"/trips/{trip}/activities/{voting_activity}/vote", json={"value": True}, headers=auth_headers(BOB)
    )
    response = await api_client.get(
        f"/trips/{trip}/activities/{voting_activity}/votes", headers=auth_headers(CAROL)
    )
    [vote] = response.json()
    assert vote["voter"] == {"id": BOB, "full_name": "Bob", "avatar_url": None}


@pytest.mark.asyncio
async def test_vote_value_must_be_boolean(api_client, voting_activity, trip):
    response = await api_client.post(
        f"/trips/{trip}/activities/{voting_activity}/vote", json={"value": "false"}, headers=auth_headers(BOB)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_join_by_invite_code(api_client, trip):
    response = await api_client.get(f"/trips/{trip}", headers=auth_headers(OWNER))
    invite_code = response.json()["invite_code"]

    response = await api_client.post(f"/trips/join/{invite_code}", headers=auth_headers(OUTSIDER))
    assert response.status_code == 200
    joined = response.json()
    assert (joined["trip_id"], joined["user_id"], joined["is_owner"]) == (trip, OUTSIDER, False)

    response = await api_client.post(f"/trips/join/{invite_code}", headers=auth_headers(OUTSIDER))
    assert response.json()["id"] == joined["id"]

    response = await api_client.get(f"/trips/{trip}", headers=auth_headers(OUTSIDER))
    assert response.status_code == 200
    assert response.json()["participant_count"] == 5


@pytest.mark.asyncio
async def test_join_with_unknown_code(api_client, trip):
    response = await api_client.post("/trips/join/nope1234", headers=auth_headers(OUTSIDER))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_budget_per_person(api_client, trip):
    response = await api_client.post(
        "/trips",
        json={
            "name": "Madeira",
            "destination": "Funchal",
            "start_date": "2026-09-01",
            "end_date": "2026-09-07",
            "budget": "1000",
            "currency": "EUR",
        },
        headers=auth_headers(OWNER),
    )
    created = response.json()
    assert created["participant_count"] == 1
    assert created["budget_per_person"] == "1000.00"

    for user_id in (ALICE, BOB):
        await api_client.post(f"/trips/join/{created['invite_code']}", headers=auth_headers(user_id))

    response = await api_client.get(f"/trips/{created['id']}", headers=auth_headers(OWNER))
    body = response.json()
    assert body["participant_count"] == 3
    assert body["budget_per_person"] == "333.33"

    response = await api_client.get(f"/trips/{trip}", headers=auth_headers(OWNER))
    assert response.json()["budget_per_person"] is None
