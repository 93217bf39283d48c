import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from cohorthub.core.exceptions import (
    AtCapacityError,
    CapacityCounterMismatch,
    ForbiddenError,
    ProblemStatementNotFound,
    TeamNotFound,
    ValidationError,
)
from cohorthub.crud.problem_statement import (
    count_selections,
    create_problem_statement,
    get_problem_statement,
    list_problem_statements,
    release_problem_statement,
    select_problem_statement,
    selection_snapshot,
)
from cohorthub.crud.team import create_team, get_team, join_team
from cohorthub.models.problem_statement import ProblemStatement


@pytest.fixture
def problem(db: Session):
    return create_problem_statement(db, {
        "title": "Smart irrigation",
        "description": "Schedule watering from soil sensors",
        "domain": "Agriculture",
        "external_id": 12,
    })


@pytest.fixture
def teams(db: Session, make_user):
    result = []
    for i in range(5):
        leader = make_user(f"lead{i}")
        result.append(create_team(db, name=f"Team {i}", leader_id=leader.id))
    return result


def test_create_problem_statement_requires_title(db: Session):
    with pytest.raises(ValidationError):
        create_problem_statement(db, {"title": "  "})


def test_get_problem_statement_not_found(db: Session):
    with pytest.raises(ProblemStatementNotFound):
        get_problem_statement(db, 404)


def test_four_select_fifth_at_capacity_then_retry_after_release(db: Session, problem, teams):
    for team in teams[:4]:
        select_problem_statement(db, team.id, problem.id)

    with pytest.raises(AtCapacityError) as exc:
        select_problem_statement(db, teams[4].id, problem.id)
    assert exc.value.code == "at_capacity"
    assert exc.value.details == {"problem_statement_id": problem.id}
    assert get_problem_statement(db, problem.id).selection_count == 4

    assert release_problem_statement(db, teams[1].id) is True
    select_problem_statement(db, teams[4].id, problem.id)

    snapshot = selection_snapshot(db, problem.id)
    assert snapshot["selection_count"] == 4
    assert snapshot["team_ids"] == sorted([teams[0].id, teams[2].id, teams[3].id, teams[4].id])


def test_reselect_same_problem_is_noop(db: Session, problem, teams):
    select_problem_statement(db, teams[0].id, problem.id)
    select_problem_statement(db, teams[0].id, problem.id)
    assert get_problem_statement(db, problem.id).selection_count == 1


def test_switch_releases_previous(db: Session, problem, teams):
    other = create_problem_statement(db, {"title": "Flood alerts"})
    select_problem_statement(db, teams[0].id, problem.id)
    select_problem_statement(db, teams[0].id, other.id)

    assert get_problem_statement(db, problem.id).selection_count == 0
    assert get_problem_statement(db, other.id).selection_count == 1
    assert count_selections(db, other.id) == 1


def test_release_is_idempotent(db: Session, teams):
    assert release_problem_statement(db, teams[0].id) is False
    assert release_problem_statement(db, teams[0].id) is False


def test_select_requires_leader_and_active_team(db: Session, make_user, problem, teams):
    member = make_user("plain")
    join_team(db, teams[0].id, member.id)

    with pytest.raises(ForbiddenError):
        select_problem_statement(db, teams[0].id, problem.id, acting_user_id=member.id)
    with pytest.raises(TeamNotFound):
        select_problem_statement(db, 999, problem.id)
    with pytest.raises(ProblemStatementNotFound):
        select_problem_statement(db, teams[0].id, 999)


def test_list_available_only(db: Session, problem, teams):
    other = create_problem_statement(db, {"title": "Air quality"})
    for team in teams[:4]:
        select_problem_statement(db, team.id, problem.id)

    titles = [p.title for p in list_problem_statements(db, available_only=True)]
    assert titles == [other.title]
    assert [p.id for p in list_problem_statements(db, search="irrigation")] == [problem.id]


def test_release_with_corrupted_counter_rolls_back(db: Session, problem, teams):
    other = create_problem_statement(db, {"title": "Flood alerts"})
    select_problem_statement(db, teams[0].id, problem.id)
    db.execute(update(ProblemStatement).where(ProblemStatement.id == problem.id).values(selection_count=0))
    db.commit()

    with pytest.raises(CapacityCounterMismatch) as exc:
        release_problem_statement(db, teams[0].id)
    assert exc.value.status_code == 500
    assert get_team(db, teams[0].id).problem_statement_id == problem.id

    # переход на другую задачу тоже откатывается целиком, включая инкремент новой
    with pytest.raises(CapacityCounterMismatch):
        select_problem_statement(db, teams[0].id, other.id)
    assert get_team(db, teams[0].id).problem_statement_id == problem.id
    assert get_problem_statement(db, other.id).selection_count == 0
