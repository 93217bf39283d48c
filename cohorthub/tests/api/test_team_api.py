import pytest
from fastapi.testclient import TestClient
from http import HTTPStatus

TEAMS_ENDPOINT = "/teams"


@pytest.fixture
def leader(make_user):
    return make_user("leader")


@pytest.fixture
def alpha(client: TestClient, leader, auth_headers) -> dict:
    response = client.post(f"{TEAMS_ENDPOINT}/", headers=auth_headers(leader), json={"name": "Alpha", "description": "First"})
    assert response.status_code == HTTPStatus.CREATED, response.text
    return response.json()


def test_create_team_success(alpha, leader):
    assert alpha["name"] == "Alpha"
    assert alpha["leader_id"] == leader.id
    assert alpha["member_count"] == 1
    assert alpha["members"][0]["role"] == "leader"
    assert alpha["members"][0]["user"]["username"] == "leader"


def test_create_team_requires_auth(client: TestClient):
    response = client.post(f"{TEAMS_ENDPOINT}/", json={"name": "Nobody"})
    assert response.status_code == HTTPStatus.UNAUTHORIZED
    assert response.json()["error"]["code"] == "not_authenticated"


def test_create_team_invalid_token(client: TestClient):
    response = client.get(f"{TEAMS_ENDPOINT}/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == HTTPStatus.UNAUTHORIZED


def test_duplicate_name_error_shape(client: TestClient, alpha, make_user, auth_headers):
    other = make_user("other")
    response = client.post(f"{TEAMS_ENDPOINT}/", headers=auth_headers(other), json={"name": "ALPHA"})
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["error"]["code"] == "duplicate_name"
    assert "message" in response.json()["error"]


def test_join_leave_and_my_team(client: TestClient, alpha, make_user, auth_headers):
    member = make_user("member")
    headers = auth_headers(member)

    response = client.post(f"{TEAMS_ENDPOINT}/{alpha['id']}/join", headers=headers)
    assert response.status_code == HTTPStatus.OK, response.text
    assert response.json()["member_count"] == 2

    response = client.post(f"{TEAMS_ENDPOINT}/{alpha['id']}/join", headers=headers)
    assert response.json()["error"]["code"] == "already_teamed"

    assert client.get(f"{TEAMS_ENDPOINT}/me", headers=headers).json()["id"] == alpha["id"]

    response = client.post(f"{TEAMS_ENDPOINT}/{alpha['id']}/leave", headers=headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()["member_count"] == 1
    assert [m["user_id"] for m in response.json()["members"]] == [alpha["leader_id"]]
    assert client.get(f"{TEAMS_ENDPOINT}/me", headers=headers).status_code == HTTPStatus.NOT_FOUND


def test_leader_leave_with_transfer(client: TestClient, alpha, leader, make_user, auth_headers):
    member = make_user("member")
    client.post(f"{TEAMS_ENDPOINT}/{alpha['id']}/join", headers=auth_headers(member))

    response = client.post(f"{TEAMS_ENDPOINT}/{alpha['id']}/leave", headers=auth_headers(leader))
    assert response.json()["error"]["code"] == "leadership_transfer_required"

    response = client.post(
        f"{TEAMS_ENDPOINT}/{alpha['id']}/leave",
        headers=auth_headers(leader),
        json={"transfer_to_user_id": member.id},
    )
    assert response.status_code == HTTPStatus.OK, response.text
    assert response.json()["leader_id"] == member.id
    assert response.json()["member_count"] == 1
    assert client.get(f"{TEAMS_ENDPOINT}/{alpha['id']}").json()["leader_id"] == member.id


def test_sole_leader_leave_disbands(client: TestClient, alpha, leader, auth_headers):
    response = client.post(f"{TEAMS_ENDPOINT}/{alpha['id']}/leave", headers=auth_headers(leader))
    assert response.status_code == HTTPStatus.OK
    assert response.json() is None
    assert client.get(f"{TEAMS_ENDPOINT}/{alpha['id']}").status_code == HTTPStatus.NOT_FOUND


def test_update_remove_and_transfer_are_leader_only(client: TestClient, alpha, leader, make_user, auth_headers):
    member = make_user("member")
    client.post(f"{TEAMS_ENDPOINT}/{alpha['id']}/join", headers=auth_headers(member))

    response = client.patch(f"{TEAMS_ENDPOINT}/{alpha['id']}", headers=auth_headers(member), json={"name": "Hijack"})
    assert response.status_code == HTTPStatus.FORBIDDEN
    assert response.json()["error"]["code"] == "forbidden"

    response = client.patch(f"{TEAMS_ENDPOINT}/{alpha['id']}", headers=auth_headers(leader), json={"name": "Omega"})
    assert response.json()["name"] == "Omega"

    response = client.delete(f"{TEAMS_ENDPOINT}/{alpha['id']}/members/{leader.id}", headers=auth_headers(leader))
    assert response.json()["error"]["code"] == "cannot_remove_leader"

    response = client.post(
        f"{TEAMS_ENDPOINT}/{alpha['id']}/transfer-leadership",
        headers=auth_headers(leader),
        json={"new_leader_id": member.id},
    )
    assert response.json()["leader_id"] == member.id

    response = client.delete(f"{TEAMS_ENDPOINT}/{alpha['id']}/members/{leader.id}", headers=auth_headers(member))
    assert response.status_code == HTTPStatus.OK
    assert [m["user_id"] for m in response.json()["members"]] == [member.id]


def test_problem_statement_selection(client: TestClient, alpha, leader, auth_headers, mentor_token_headers):
    problem = client.post("/problem-statements/", headers=mentor_token_headers, json={"title": "Flood alerts"}).json()

    response = client.put(
        f"{TEAMS_ENDPOINT}/{alpha['id']}/problem-statement",
        headers=auth_headers(leader),
        json={"problem_statement_id": problem["id"]},
    )
    assert response.json()["problem_statement_id"] == problem["id"]
    assert client.get(f"/problem-statements/{problem['id']}").json()["selection_count"] == 1

    response = client.delete(f"{TEAMS_ENDPOINT}/{alpha['id']}/problem-statement", headers=auth_headers(leader))
    assert response.json()["problem_statement_id"] is None
    assert client.get(f"/problem-statements/{problem['id']}").json()["selection_count"] == 0


def test_list_teams_and_available_users(client: TestClient, alpha, leader, make_user, auth_headers):
    free = make_user("free")
    data = client.get(f"{TEAMS_ENDPOINT}/", params={"search": "alp"}).json()
    assert data["total_count"] == 1
    assert data["results"][0]["id"] == alpha["id"]

    available = client.get(f"{TEAMS_ENDPOINT}/available-users", headers=auth_headers(leader)).json()
    assert [u["id"] for u in available] == [free.id]


def test_disband_team(client: TestClient, alpha, leader, auth_headers):
    response = client.delete(f"{TEAMS_ENDPOINT}/{alpha['id']}", headers=auth_headers(leader))
    assert response.status_code == HTTPStatus.OK
    assert client.get(f"{TEAMS_ENDPOINT}/").json()["total_count"] == 0
