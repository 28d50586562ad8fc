"""
Integration tests for the Points endpoints.

Tests score changes, bound enforcement, reversal, history and stats
through the HTTP surface.
"""

import pytest


@pytest.fixture
async def person_id(client, auth_headers):
    response = await client.post("/v1/persons", json={"name": "Alice"}, headers=auth_headers)
    assert response.status_code == 201
    return response.json()["id"]


async def apply(client, headers, person_id, points, comment="change"):
    return await client.post(
        "/v1/points",
        json={"personId": person_id, "points": points, "comment": comment},
        headers=headers
    )


# TEST 1: Apply Points
@pytest.mark.asyncio
async def test_add_points(client, auth_headers, person_id):
    response = await apply(client, auth_headers, person_id, 50, "Helped a colleague")

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Points added successfully"
    assert data["person"]["score"] == 50
    assert data["entry"]["delta"] == 50
    assert data["entry"]["comment"] == "Helped a colleague"
    assert data["entry"]["modified_by"] == "alice@example.com"


@pytest.mark.asyncio
async def test_remove_points_with_snake_case_body(client, auth_headers, person_id):
    await apply(client, auth_headers, person_id, 50)

    response = await client.post(
        "/v1/points",
        json={"person_id": person_id, "points": -20, "comment": "late"},
        headers=auth_headers
    )

    assert response.status_code == 201
    assert response.json()["message"] == "Points removed successfully"
    assert response.json()["person"]["score"] == 30


# TEST 2: Input validation
@pytest.mark.asyncio
@pytest.mark.parametrize("points,comment", [(0, "zero"), (201, "too much"), (-201, "too little"), (10, ""), (10, "  ")])
async def test_invalid_points_input(client, auth_headers, person_id, points, comment):
    response = await apply(client, auth_headers, person_id, points, comment)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_INPUT"


@pytest.mark.asyncio
async def test_points_for_unknown_person(client, auth_headers):
    response = await apply(client, auth_headers, 999, 10)
    assert response.status_code == 404


# TEST 3: Bound enforcement
@pytest.mark.asyncio
async def test_points_above_max_rejected(client, auth_headers, person_id):
    await apply(client, auth_headers, person_id, 190)

    response = await apply(client, auth_headers, person_id, 20)

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_OUT_OF_RANGE"
    assert body["details"]["bound"] == "high"

    person = await client.get(f"/v1/persons/{person_id}", headers=auth_headers)
    assert person.json()["score"] == 190


@pytest.mark.asyncio
async def test_points_below_zero_rejected(client, auth_headers, person_id):
    response = await apply(client, auth_headers, person_id, -1)

    assert response.status_code == 400
    assert response.json()["details"]["bound"] == "low"


# TEST 4: Reversal
@pytest.mark.asyncio
async def test_reverse_entry(client, auth_headers, person_id):
    await apply(client, auth_headers, person_id, 40)
    entry_id = (await apply(client, auth_headers, person_id, 15)).json()["entry"]["id"]

    response = await client.delete(f"/v1/points/{entry_id}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["reversed_entry"]["id"] == entry_id
    assert data["reversed_entry"]["delta"] == 15
    assert data["new_score"] == 40

    again = await client.delete(f"/v1/points/{entry_id}", headers=auth_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_invalid_reversal(client, auth_headers, person_id):
    entry_id = (await apply(client, auth_headers, person_id, 50)).json()["entry"]["id"]
    await apply(client, auth_headers, person_id, -45)

    response = await client.delete(f"/v1/points/{entry_id}", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_REVERSAL"

    history = await client.get(f"/v1/points/history/{person_id}", headers=auth_headers)
    assert entry_id in [e["id"] for e in history.json()["history"]]


# TEST 4b: Entry ids are never reused
@pytest.mark.asyncio
async def test_reversed_entry_id_is_not_reused(client, auth_headers, person_id):
    first = (await apply(client, auth_headers, person_id, 10, "a")).json()["entry"]["id"]
    assert (await client.delete(f"/v1/points/{first}", headers=auth_headers)).status_code == 200

    second = (await apply(client, auth_headers, person_id, 30, "b")).json()["entry"]["id"]
    assert second != first

    again = await client.delete(f"/v1/points/{first}", headers=auth_headers)
    assert again.status_code == 404

    person = await client.get(f"/v1/persons/{person_id}", headers=auth_headers)
    assert person.json()["score"] == 30


# TEST 5: History
@pytest.mark.asyncio
async def test_history_pagination(client, auth_headers, person_id):
    for i in range(25):
        await apply(client, auth_headers, person_id, 1, f"entry {i}")

    page1 = (await client.get(
        f"/v1/points/history/{person_id}", params={"page": 1, "limit": 10}, headers=auth_headers
    )).json()
    assert len(page1["history"]) == 10
    assert page1["history"][0]["comment"] == "entry 24"
    assert page1["pagination"]["has_next"] is True
    assert page1["pagination"]["has_previous"] is False
    assert page1["pagination"]["total_count"] == 25
    assert page1["person"]["score"] == 25

    page3 = (await client.get(
        f"/v1/points/history/{person_id}", params={"page": 3, "limit": 10}, headers=auth_headers
    )).json()
    assert len(page3["history"]) == 5
    assert page3["pagination"]["has_next"] is False
    assert page3["pagination"]["has_previous"] is True


@pytest.mark.asyncio
async def test_history_defaults(client, auth_headers, person_id):
    response = await client.get(f"/v1/points/history/{person_id}", headers=auth_headers)

    assert response.status_code == 200
    pagination = response.json()["pagination"]
    assert pagination["current_page"] == 1
    assert pagination["page_size"] == 20
    assert pagination["total_pages"] == 0


@pytest.mark.asyncio
async def test_history_unknown_person(client, auth_headers):
    response = await client.get("/v1/points/history/4242", headers=auth_headers)
    assert response.status_code == 404


# TEST 6: Stats
@pytest.mark.asyncio
async def test_stats(client, auth_headers, person_id):
    for points in (50, -20, 10):
        await apply(client, auth_headers, person_id, points)

    response = await client.get(f"/v1/points/stats/{person_id}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["person"]["current_score"] == 40
    assert data["stats"] == {
        "total_modifications": 3,
        "total_points_changed": 40,
        "points_added": {"total": 60, "count": 2},
        "points_removed": {"total": 20, "count": 1},
    }


@pytest.mark.asyncio
async def test_stats_unknown_person(client, auth_headers):
    response = await client.get("/v1/points/stats/4242", headers=auth_headers)
    assert response.status_code == 404


# TEST 7: Edge inputs
@pytest.mark.asyncio
async def test_comment_limit_applies_after_trimming(client, auth_headers, person_id):
    response = await apply(client, auth_headers, person_id, 5, " " + "c" * 500 + "  ")

    assert response.status_code == 201
    assert response.json()["entry"]["comment"] == "c" * 500


@pytest.mark.asyncio
async def test_history_page_far_past_the_end(client, auth_headers, person_id):
    await apply(client, auth_headers, person_id, 5)

    response = await client.get(
        f"/v1/points/history/{person_id}", params={"page": 10**17, "limit": 100}, headers=auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["history"] == []
    assert data["pagination"]["total_count"] == 1
    assert data["pagination"]["has_next"] is False


@pytest.mark.asyncio
async def test_ids_beyond_storage_range_are_not_found(client, auth_headers):
    huge = 2**63
    assert (await client.delete(f"/v1/points/{huge}", headers=auth_headers)).status_code == 404
    assert (await client.get(f"/v1/points/history/{huge}", headers=auth_headers)).status_code == 404
    assert (await client.get(f"/v1/points/stats/{huge}", headers=auth_headers)).status_code == 404
    assert (await apply(client, auth_headers, huge, 10)).status_code == 404
