import pytest
from fastapi.testclient import TestClient
from http import HTTPStatus

from cohorthub.crud.team import create_team


@pytest.fixture
def voting(db, make_user):
    voter = make_user("voter")
    own = create_team(db, name="Alpha", leader_id=voter.id)
    target = create_team(db, name="Beta", leader_id=make_user("beta_lead").id)
    return voter, own.id, target.id


def test_vote_flow(client: TestClient, voting, auth_headers):
    voter, own_id, target_id = voting
    headers = auth_headers(voter)

    response = client.post(f"/votes/teams/{target_id}", headers=headers, json={"rating": 4, "comment": "Nice pitch"})
    assert response.status_code == HTTPStatus.CREATED, response.text
    assert response.json()["voter_team_id"] == own_id

    response = client.post(f"/votes/teams/{target_id}", headers=headers, json={"rating": 5, "comment": "Again"})
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["error"]["code"] == "duplicate_vote"

    response = client.put(f"/votes/teams/{target_id}", headers=headers, json={"rating": 5, "comment": "Even better"})
    assert response.json()["rating"] == 5

    assert client.get(f"/votes/teams/{target_id}/rating").json() == {"team_id": target_id, "average_rating": 5.0, "total_votes": 1}
    assert client.get("/votes/progress", headers=headers).json() == {"voted_count": 1, "total_count": 1, "completed": True}
    assert [v["team_id"] for v in client.get("/votes/history", headers=headers).json()] == [target_id]

    assert client.delete(f"/votes/teams/{target_id}", headers=headers).status_code == HTTPStatus.OK
    assert client.get(f"/votes/teams/{target_id}/mine", headers=headers).status_code == HTTPStatus.NOT_FOUND


def test_self_vote_and_invalid_rating(client: TestClient, voting, auth_headers):
    voter, own_id, target_id = voting
    headers = auth_headers(voter)

    response = client.post(f"/votes/teams/{own_id}", headers=headers, json={"rating": 5, "comment": "Us"})
    assert response.json()["error"]["code"] == "self_vote"

    response = client.post(f"/votes/teams/{target_id}", headers=headers, json={"rating": 9, "comment": "Wow"})
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
    assert response.json()["error"]["code"] == "invalid_rating"


def test_not_in_team_cannot_list_voting(client: TestClient, make_user, auth_headers):
    outsider = make_user("outsider")
    response = client.get("/votes/teams", headers=auth_headers(outsider))
    assert response.json()["error"]["code"] == "not_in_team"


def test_team_votes_staff_only(client: TestClient, voting, auth_headers, mentor_token_headers):
    voter, _, target_id = voting
    client.post(f"/votes/teams/{target_id}", headers=auth_headers(voter), json={"rating": 3, "comment": "Ok"})

    assert client.get(f"/votes/teams/{target_id}/votes", headers=auth_headers(voter)).status_code == HTTPStatus.FORBIDDEN
    votes = client.get(f"/votes/teams/{target_id}/votes", headers=mentor_token_headers).json()
    assert [v["rating"] for v in votes] == [3]
