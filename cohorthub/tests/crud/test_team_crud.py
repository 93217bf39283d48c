import random
import pytest
from sqlalchemy.orm import Session

from cohorthub.core import events
from cohorthub.core.exceptions import (
    AlreadyTeamedError,
    AtCapacityError,
    BaseAppException,
    CannotRemoveLeader,
    DuplicateTeamName,
    ForbiddenError,
    InvalidTransferTarget,
    LeadershipTransferRequired,
    NotMemberError,
    TeamFullError,
    TeamNotFound,
    ValidationError,
)
from cohorthub.crud.problem_statement import create_problem_statement, count_selections
from cohorthub.crud.team import (
    check_team_invariants,
    create_team,
    current_team_id,
    disband_team,
    get_all_teams,
    get_available_users,
    get_my_team,
    get_team,
    join_team,
    leave_team,
    remove_member,
    rename_team,
    set_problem_statement,
    transfer_leadership,
    update_team,
)
from cohorthub.models.problem_statement import ProblemStatement
from cohorthub.models.team import Team, TeamMember, ROLE_LEADER, ROLE_MEMBER
from cohorthub.models.user import User


@pytest.fixture
def leader(make_user):
    return make_user("leader")


@pytest.fixture
def members(make_user):
    return [make_user(f"member{i}") for i in range(1, 7)]


def _problem(db: Session, title: str = "Water quality") -> ProblemStatement:
    return create_problem_statement(db, {"title": title, "description": "d", "domain": "Env"})


def test_create_team_makes_creator_sole_leader(db: Session, leader):
    team = create_team(db, name="Alpha", leader_id=leader.id, description="First team")

    assert team.leader_id == leader.id
    assert team.member_ids() == [leader.id]
    assert team.members[0].role == ROLE_LEADER
    assert team.name_key == "alpha"
    assert db.get(User, leader.id).team_id == team.id
    assert check_team_invariants(team) == []


def test_create_team_duplicate_name_case_insensitive(db: Session, leader, members):
    create_team(db, name="Alpha", leader_id=leader.id)
    with pytest.raises(DuplicateTeamName):
        create_team(db, name="  aLPHA ", leader_id=members[0].id)
    assert db.get(User, members[0].id).team_id is None


def test_create_team_rejects_already_teamed_leader(db: Session, leader):
    create_team(db, name="Alpha", leader_id=leader.id)
    with pytest.raises(AlreadyTeamedError):
        create_team(db, name="Beta", leader_id=leader.id)
    assert db.query(Team).count() == 1


@pytest.mark.parametrize("name", ["ab", "x" * 51, "   "])
def test_create_team_validates_name_length(db: Session, leader, name):
    with pytest.raises(ValidationError):
        create_team(db, name=name, leader_id=leader.id)


def test_create_team_validates_description_length(db: Session, leader):
    with pytest.raises(ValidationError):
        create_team(db, name="Alpha", leader_id=leader.id, description="d" * 201)


def test_create_team_with_problem_statement(db: Session, leader):
    problem = _problem(db)
    team = create_team(db, name="Alpha", leader_id=leader.id, problem_statement_id=problem.id)

    assert team.problem_statement_id == problem.id
    db.refresh(problem)
    assert problem.selection_count == 1


def test_join_until_full_then_full(db: Session, leader, members):
    team = create_team(db, name="Alpha", leader_id=leader.id)
    for member in members[:5]:
        team = join_team(db, team.id, member.id)
    assert team.member_count == 6
    assert team.is_full

    with pytest.raises(TeamFullError):
        join_team(db, team.id, members[5].id)
    assert db.get(User, members[5].id).team_id is None
    assert check_team_invariants(get_team(db, team.id)) == []


def test_join_errors_in_order(db: Session, leader, members):
    alpha = create_team(db, name="Alpha", leader_id=leader.id)
    join_team(db, alpha.id, members[0].id)

    # AlreadyTeamed проверяется раньше, чем NotFound
    with pytest.raises(AlreadyTeamedError):
        join_team(db, 999, members[0].id)
    with pytest.raises(AlreadyTeamedError):
        join_team(db, alpha.id, members[0].id)
    with pytest.raises(TeamNotFound):
        join_team(db, 999, members[1].id)


def test_leader_leave_requires_transfer(db: Session, leader, members):
    team = create_team(db, name="Alpha", leader_id=leader.id)
    join_team(db, team.id, members[0].id)

    with pytest.raises(LeadershipTransferRequired):
        leave_team(db, team.id, leader.id)

    team = leave_team(db, team.id, leader.id, transfer_to_user_id=members[0].id)
    assert team.leader_id == members[0].id
    assert team.find_member(members[0].id).role == ROLE_LEADER
    assert not team.is_member(leader.id)
    assert db.get(User, leader.id).team_id is None
    assert check_team_invariants(team) == []


def test_leader_leave_invalid_transfer_target(db: Session, leader, members):
    team = create_team(db, name="Alpha", leader_id=leader.id)
    join_team(db, team.id, members[0].id)

    with pytest.raises(InvalidTransferTarget):
        leave_team(db, team.id, leader.id, transfer_to_user_id=members[1].id)
    with pytest.raises(InvalidTransferTarget):
        leave_team(db, team.id, leader.id, transfer_to_user_id=leader.id)
    assert get_team(db, team.id).leader_id == leader.id


def test_sole_leader_leave_deactivates_and_releases(db: Session, leader, members):
    problem = _problem(db)
    team = create_team(db, name="Alpha", leader_id=leader.id, problem_statement_id=problem.id)

    assert leave_team(db, team.id, leader.id) is None

    stored = db.get(Team, team.id)
    assert stored.is_active is False
    assert stored.name_key is None
    assert stored.problem_statement_id is None
    assert stored.members == []
    assert db.get(User, leader.id).team_id is None
    db.refresh(problem)
    assert problem.selection_count == 0
    with pytest.raises(TeamNotFound):
        get_team(db, team.id)

    # имя освобождается после деактивации
    again = create_team(db, name="Alpha", leader_id=members[0].id)
    assert again.id != team.id


def test_member_leave_and_not_member(db: Session, leader, members):
    team = create_team(db, name="Alpha", leader_id=leader.id)
    join_team(db, team.id, members[0].id)

    team = leave_team(db, team.id, members[0].id)
    assert team.member_ids() == [leader.id]
    assert db.get(User, members[0].id).team_id is None

    with pytest.raises(NotMemberError):
        leave_team(db, team.id, members[0].id)


def test_remove_member_rules(db: Session, leader, members):
    team = create_team(db, name="Alpha", leader_id=leader.id)
    join_team(db, team.id, members[0].id)
    join_team(db, team.id, members[1].id)

    with pytest.raises(ForbiddenError):
        remove_member(db, team.id, members[0].id, members[1].id)
    with pytest.raises(CannotRemoveLeader):
        remove_member(db, team.id, leader.id, leader.id)
    with pytest.raises(NotMemberError):
        remove_member(db, team.id, leader.id, members[2].id)

    team = remove_member(db, team.id, leader.id, members[1].id)
    assert members[1].id not in team.member_ids()
    assert db.get(User, members[1].id).team_id is None


def test_transfer_leadership_swaps_roles(db: Session, leader, members):
    team = create_team(db, name="Alpha", leader_id=leader.id)
    join_team(db, team.id, members[0].id)

    with pytest.raises(ForbiddenError):
        transfer_leadership(db, team.id, members[0].id, leader.id)
    with pytest.raises(InvalidTransferTarget):
        transfer_leadership(db, team.id, leader.id, members[3].id)

    team = transfer_leadership(db, team.id, leader.id, members[0].id)
    assert team.leader_id == members[0].id
    assert team.find_member(leader.id).role == ROLE_MEMBER
    assert team.find_member(members[0].id).role == ROLE_LEADER
    assert check_team_invariants(team) == []


def test_disband_team_clears_every_reference(db: Session, leader, members):
    problem = _problem(db)
    team = create_team(db, name="Alpha", leader_id=leader.id, problem_statement_id=problem.id)
    join_team(db, team.id, members[0].id)

    with pytest.raises(ForbiddenError):
        disband_team(db, team.id, members[0].id)
    assert disband_team(db, team.id, leader.id) is True

    assert db.query(TeamMember).count() == 0
    assert db.get(User, leader.id).team_id is None
    assert db.get(User, members[0].id).team_id is None
    assert count_selections(db, problem.id) == 0


def test_update_team_all_or_nothing_on_capacity(db: Session, make_user, leader):
    problem = _problem(db)
    for i in range(4):
        owner = make_user(f"owner{i}")
        create_team(db, name=f"Holder {i}", leader_id=owner.id, problem_statement_id=problem.id)
    team = create_team(db, name="Alpha", leader_id=leader.id)

    with pytest.raises(AtCapacityError):
        update_team(db, team.id, leader.id, name="Renamed", problem_statement_id=problem.id)

    stored = get_team(db, team.id)
    assert stored.name == "Alpha"
    assert stored.problem_statement_id is None


def test_rename_team_and_duplicate(db: Session, leader, members):
    create_team(db, name="Alpha", leader_id=leader.id)
    beta = create_team(db, name="Beta", leader_id=members[0].id)

    with pytest.raises(DuplicateTeamName):
        rename_team(db, beta.id, members[0].id, "ALPHA")
    with pytest.raises(ForbiddenError):
        rename_team(db, beta.id, leader.id, "Gamma")

    beta = rename_team(db, beta.id, members[0].id, "Gamma")
    assert beta.name == "Gamma"
    assert beta.name_key == "gamma"


def test_set_problem_statement_switches_and_releases(db: Session, leader):
    first = _problem(db, "First")
    second = _problem(db, "Second")
    team = create_team(db, name="Alpha", leader_id=leader.id)

    set_problem_statement(db, team.id, leader.id, first.id)
    set_problem_statement(db, team.id, leader.id, second.id)
    db.refresh(first)
    db.refresh(second)
    assert (first.selection_count, second.selection_count) == (0, 1)

    team = set_problem_statement(db, team.id, leader.id, None)
    assert team.problem_statement_id is None
    db.refresh(second)
    assert second.selection_count == 0


def test_reads(db: Session, leader, members):
    alpha = create_team(db, name="Alpha", leader_id=leader.id)
    create_team(db, name="Beta", leader_id=members[0].id)

    teams, total = get_all_teams(db, search="alp")
    assert total == 1 and teams[0].id == alpha.id

    assert get_my_team(db, leader.id).id == alpha.id
    with pytest.raises(TeamNotFound):
        get_my_team(db, members[1].id)

    available = {u.id for u in get_available_users(db)}
    assert leader.id not in available
    assert members[1].id in available


def test_mutations_emit_team_changed(db: Session, leader, members):
    received = []
    handler = lambda team_id: received.append(team_id)
    events.subscribe(events.TEAM_CHANGED, handler)
    try:
        team = create_team(db, name="Alpha", leader_id=leader.id)
        join_team(db, team.id, members[0].id)
        with pytest.raises(TeamFullError):
            # откат не должен публиковать событие
            for member in members[1:]:
                join_team(db, team.id, member.id)
    finally:
        events.unsubscribe(events.TEAM_CHANGED, handler)
    assert received == [team.id] * 6


def _assert_global_consistency(db: Session) -> None:
    db.expire_all()
    for team in db.query(Team).all():
        assert check_team_invariants(team) == [], team
    for user in db.query(User).all():
        assert user.team_id == current_team_id(db, user.id)
    for problem in db.query(ProblemStatement).all():
        assert problem.selection_count == count_selections(db, problem.id) <= 4


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_random_operation_sequences_keep_invariants(db: Session, make_user, seed):
    rng = random.Random(seed)
    users = [make_user(f"user{seed}_{i}") for i in range(10)]
    problems = [_problem(db, f"Problem {i}") for i in range(2)]

    for step in range(120):
        user = rng.choice(users)
        teams = db.query(Team).filter(Team.is_active.is_(True)).all()
        team = rng.choice(teams) if teams else None
        op = rng.choice(["create", "join", "leave", "transfer", "remove", "select"])
        try:
            if op == "create" or team is None:
                create_team(db, name=f"Team {seed} {step}", leader_id=user.id)
            elif op == "join":
                join_team(db, team.id, user.id)
            elif op == "leave":
                target = rng.choice(users + [None])
                leave_team(db, team.id, user.id, transfer_to_user_id=target.id if target else None)
            elif op == "transfer":
                transfer_leadership(db, team.id, team.leader_id, rng.choice(users).id)
            elif op == "remove":
                remove_member(db, team.id, team.leader_id, rng.choice(users).id)
            else:
                problem = rng.choice(problems + [None])
                set_problem_statement(db, team.id, team.leader_id, problem.id if problem else None)
        except BaseAppException:
            pass
        _assert_global_consistency(db)
