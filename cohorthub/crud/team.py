#cohorthub/crud/team.py
"""
Membership Ledger: состав команд и денормализованная ссылка User.team_id.

Team.members является источником истины; User.team_id пишется только здесь и только в
той же единице работы, что и изменение состава. Любое изменение состава
обновляет строку команды (version), поэтому два параллельных join в одну
команду не могут оба закоммитить одно и то же свободное место.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from cohorthub.core import events
from cohorthub.core.concurrency import atomic
from cohorthub.core.exceptions import (
    AlreadyMemberError,
    AlreadyTeamedError,
    BaseAppException,
    CannotRemoveLeader,
    DuplicateTeamName,
    ForbiddenError,
    InvalidTransferTarget,
    LeadershipTransferRequired,
    NotMemberError,
    TeamError,
    TeamFullError,
    TeamNotFound,
    ValidationError,
)
from cohorthub.core.settings import settings
from cohorthub.crud.problem_statement import acquire_selection, release_selection
from cohorthub.crud.user import require_user
from cohorthub.models.team import Team, TeamMember, ROLE_LEADER, ROLE_MEMBER
from cohorthub.models.user import User

logger = logging.getLogger("CohortHub.Teams")

_UNSET = object()

def _membership_integrity_error(e: IntegrityError) -> BaseAppException:
    message = str(e.orig).lower()
    if "name_key" in message:
        return DuplicateTeamName("Team name already exists. Please choose a different name.")
    if "team_members" in message:
        return AlreadyTeamedError("You are already a member of a team. Leave your current team first.")
    return TeamError(f"Database constraint violated: {e.orig}")

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _touch(team: Team) -> None:
    team.updated_at = _now()

def _set_team_ref(user: User, team_id: Optional[int]) -> None:
    user.team_id = team_id
    user.updated_at = _now()

def _validate_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not settings.TEAM_NAME_MIN_LENGTH <= len(name) <= settings.TEAM_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Team name must be between {settings.TEAM_NAME_MIN_LENGTH} and "
            f"{settings.TEAM_NAME_MAX_LENGTH} characters."
        )
    return name

def _validate_description(description: Optional[str]) -> str:
    description = (description or "").strip()
    if len(description) > settings.TEAM_DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Team description must be at most {settings.TEAM_DESCRIPTION_MAX_LENGTH} characters."
        )
    return description

def _ensure_name_free(db: Session, name: str, exclude_team_id: Optional[int] = None) -> None:
    query = db.query(Team.id).filter(Team.name_key == name.lower())
    if exclude_team_id is not None:
        query = query.filter(Team.id != exclude_team_id)
    if query.first():
        raise DuplicateTeamName(f"Team name '{name}' already exists. Please choose a different name.")

def membership_of(db: Session, user_id: int) -> Optional[TeamMember]:
    """
    Текущее членство пользователя (строка team_members активной команды) или None.
    """
    return (
        db.query(TeamMember)
        .join(Team, Team.id == TeamMember.team_id)
        .filter(TeamMember.user_id == user_id, Team.is_active.is_(True))
        .first()
    )

def current_team_id(db: Session, user_id: int) -> Optional[int]:
    membership = membership_of(db, user_id)
    return membership.team_id if membership else None

def check_team_invariants(team: Team) -> List[str]:
    """
    Вернуть список нарушений инвариантов команды (пустой список означает, что всё согласовано).
    Для неактивной команды состав должен быть пуст.
    """
    problems = []
    if not team.is_active:
        if team.members:
            problems.append("inactive team still has members")
        return problems
    leaders = [m for m in team.members if m.role == ROLE_LEADER]
    if len(leaders) != 1:
        problems.append(f"expected exactly one leader, found {len(leaders)}")
    leader_row = team.find_member(team.leader_id)
    if leader_row is None or leader_row.role != ROLE_LEADER:
        problems.append("leader is not a member with role leader")
    if len(team.members) > team.max_members:
        problems.append(f"{len(team.members)} members exceed max {team.max_members}")
    if len(set(team.member_ids())) != len(team.members):
        problems.append("duplicate member rows")
    return problems

def _assert_consistent(team: Team) -> None:
    problems = check_team_invariants(team)
    if problems:
        logger.error(f"Team {team.id} invariants violated: {problems}")
        raise TeamError(f"Team invariants violated: {'; '.join(problems)}")

def _deactivate(db: Session, team: Team) -> None:
    release_selection(db, team)
    team.members.clear()
    team.is_active = False
    team.name_key = None
    team.deactivated_at = _now()
    _touch(team)

# ==== Чтение ====

def get_team(db: Session, team_id: int, include_inactive: bool = False) -> Team:
    """
    Получить команду по ID (по умолчанию только активную).
    """
    query = db.query(Team).options(selectinload(Team.members)).filter(Team.id == team_id)
    if not include_inactive:
        query = query.filter(Team.is_active.is_(True))
    team = query.first()
    if not team:
        raise TeamNotFound(f"Team with id={team_id} not found{' (or is inactive)' if not include_inactive else ''}.")
    return team

_SORTABLE = {"created_at": Team.created_at, "name": Team.name, "updated_at": Team.updated_at}

def get_all_teams(
    db: Session,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    descending: bool = True,
    page: int = 1,
    limit: int = 60,
) -> Tuple[List[Team], int]:
    """
    Активные команды с поиском по имени и пагинацией. Возвращает (teams, total).
    """
    query = db.query(Team).filter(Team.is_active.is_(True))
    if search:
        query = query.filter(Team.name.ilike(f"%{search}%"))
    total = query.count()
    column = _SORTABLE.get(sort_by, Team.created_at)
    query = query.order_by(column.desc() if descending else column.asc(), Team.id)
    page = max(page, 1)
    teams = query.options(selectinload(Team.members)).offset((page - 1) * limit).limit(limit).all()
    return teams, total

def get_my_team(db: Session, user_id: int) -> Team:
    team_id = current_team_id(db, user_id)
    if team_id is None:
        raise TeamNotFound("You are not part of any team.")
    return get_team(db, team_id)

def get_available_users(db: Session, search: str = "", limit: int = 50) -> List[User]:
    """
    Активные участники без команды (кандидаты в команду).
    """
    query = db.query(User).filter(
        User.role == "participant",
        User.is_active.is_(True),
        User.team_id.is_(None),
    )
    if search:
        val = f"%{search}%"
        query = query.filter(User.username.ilike(val) | User.full_name.ilike(val) | User.email.ilike(val))
    return query.order_by(User.username).limit(limit).all()

# ==== Изменение состава ====

@atomic("create_team", on_integrity_error=_membership_integrity_error)
def create_team(
    db: Session,
    name: str,
    leader_id: int,
    description: str = "",
    problem_statement_id: Optional[int] = None,
) -> Team:
    """
    Создать команду: создатель становится лидером и единственным участником.
    """
    leader = require_user(db, leader_id)
    if membership_of(db, leader_id) is not None or leader.team_id is not None:
        raise AlreadyTeamedError("You are already a member of a team. Leave your current team first.")
    name = _validate_name(name)
    _ensure_name_free(db, name)

    team = Team(
        name=name,
        name_key=name.lower(),
        description=_validate_description(description),
        leader_id=leader_id,
        max_members=settings.TEAM_MAX_MEMBERS,
        is_active=True,
    )
    team.members.append(TeamMember(user_id=leader_id, role=ROLE_LEADER, joined_at=_now()))
    db.add(team)
    db.flush()

    if problem_statement_id is not None:
        acquire_selection(db, team, problem_statement_id)

    _set_team_ref(leader, team.id)
    _assert_consistent(team)
    events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    logger.info(f"Created team '{team.name}' (ID: {team.id}) led by user {leader_id}")
    return team

@atomic("join_team", on_integrity_error=_membership_integrity_error)
def join_team(db: Session, team_id: int, user_id: int) -> Team:
    """
    Вступить в команду. Проверки: AlreadyTeamed, NotFound, Full, AlreadyMember.
    """
    user = require_user(db, user_id)
    if membership_of(db, user_id) is not None or user.team_id is not None:
        raise AlreadyTeamedError("You are already a member of a team. Leave your current team first.")
    team = get_team(db, team_id)
    if team.is_full:
        raise TeamFullError(f"Team '{team.name}' is already full ({team.max_members} members).")
    if team.is_member(user_id):
        raise AlreadyMemberError()

    team.members.append(TeamMember(user_id=user_id, role=ROLE_MEMBER, joined_at=_now()))
    _touch(team)
    _set_team_ref(user, team.id)
    _assert_consistent(team)
    events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    logger.info(f"User {user_id} joined team {team.id} ({len(team.members)}/{team.max_members})")
    return team

@atomic("leave_team")
def leave_team(
    db: Session,
    team_id: int,
    user_id: int,
    transfer_to_user_id: Optional[int] = None,
) -> Optional[Team]:
    """
    Выйти из команды.

    - лидер, других участников нет: команда деактивируется, задача освобождается, возвращается None;
    - лидер, есть другие участники: нужен transfer_to_user_id (иначе LeadershipTransferRequired),
      цель должна быть другим участником (иначе InvalidTransferTarget);
    - обычный участник просто удаляется из состава.
    """
    team = get_team(db, team_id)
    membership = team.find_member(user_id)
    if membership is None:
        raise NotMemberError("You are not a member of this team.")
    user = require_user(db, user_id)

    if team.is_leader(user_id):
        others = [m for m in team.members if m.user_id != user_id]
        if not others:
            _deactivate(db, team)
            _set_team_ref(user, None)
            events.queue(db, events.TEAM_CHANGED, team_id=team.id)
            logger.info(f"Team {team.id} disbanded: leader {user_id} was the only member")
            return None
        if transfer_to_user_id is None:
            raise LeadershipTransferRequired(
                "You are the team leader. Transfer leadership to another member before leaving."
            )
        target = team.find_member(transfer_to_user_id)
        if target is None or transfer_to_user_id == user_id:
            raise InvalidTransferTarget("Specified user is not another member of this team.")
        target.role = ROLE_LEADER
        team.leader_id = transfer_to_user_id
        logger.info(f"Team {team.id}: leadership transferred from {user_id} to {transfer_to_user_id}")

    team.members.remove(membership)
    _touch(team)
    _set_team_ref(user, None)
    _assert_consistent(team)
    events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    logger.info(f"User {user_id} left team {team.id}")
    return team

@atomic("remove_member")
def remove_member(db: Session, team_id: int, acting_leader_id: int, member_id: int) -> Team:
    """
    Исключить участника (только лидер; лидера исключить нельзя).
    """
    team = get_team(db, team_id)
    if not team.is_leader(acting_leader_id):
        raise ForbiddenError("Only team leader can remove members.")
    if team.is_leader(member_id):
        raise CannotRemoveLeader()
    membership = team.find_member(member_id)
    if membership is None:
        raise NotMemberError("User is not a member of this team.")

    team.members.remove(membership)
    _touch(team)
    member = require_user(db, member_id)
    _set_team_ref(member, None)
    _assert_consistent(team)
    events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    logger.info(f"Leader {acting_leader_id} removed user {member_id} from team {team.id}")
    return team

@atomic("transfer_leadership")
def transfer_leadership(db: Session, team_id: int, acting_leader_id: int, new_leader_id: int) -> Team:
    """
    Передать лидерство другому участнику без выхода из команды.
    """
    team = get_team(db, team_id)
    if not team.is_leader(acting_leader_id):
        raise ForbiddenError("Only team leader can transfer leadership.")
    target = team.find_member(new_leader_id)
    if target is None or new_leader_id == acting_leader_id:
        raise InvalidTransferTarget("New leader must be another current team member.")

    current = team.find_member(acting_leader_id)
    current.role = ROLE_MEMBER
    target.role = ROLE_LEADER
    team.leader_id = new_leader_id
    _touch(team)
    _assert_consistent(team)
    events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    logger.info(f"Team {team.id}: leadership transferred from {acting_leader_id} to {new_leader_id}")
    return team

@atomic("disband_team")
def disband_team(db: Session, team_id: int, acting_leader_id: int) -> bool:
    """
    Распустить команду целиком: очистить ссылки всех участников, освободить задачу.
    """
    team = get_team(db, team_id)
    if not team.is_leader(acting_leader_id):
        raise ForbiddenError("Only team leader can delete the team.")
    for member_id in team.member_ids():
        _set_team_ref(require_user(db, member_id), None)
    _deactivate(db, team)
    events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    logger.info(f"Team {team.id} disbanded by leader {acting_leader_id}")
    return True

# ==== Изменение атрибутов ====

def _apply_update(
    db: Session,
    team_id: int,
    acting_leader_id: int,
    name=_UNSET,
    description=_UNSET,
    problem_statement_id=_UNSET,
) -> Team:
    team = get_team(db, team_id)
    if not team.is_leader(acting_leader_id):
        raise ForbiddenError("Only team leader can update team details.")

    if name is not _UNSET and name is not None:
        new_name = _validate_name(name)
        if new_name != team.name:
            _ensure_name_free(db, new_name, exclude_team_id=team.id)
            team.name = new_name
            team.name_key = new_name.lower()
    if description is not _UNSET and description is not None:
        team.description = _validate_description(description)
    if problem_statement_id is not _UNSET:
        # AtCapacityError отсюда откатывает и переименование
        if problem_statement_id is None:
            release_selection(db, team)
        else:
            acquire_selection(db, team, problem_statement_id)

    _touch(team)
    events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    logger.info(f"Updated team '{team.name}' (ID: {team.id})")
    return team

@atomic("update_team", on_integrity_error=_membership_integrity_error)
def update_team(
    db: Session,
    team_id: int,
    acting_leader_id: int,
    name=_UNSET,
    description=_UNSET,
    problem_statement_id=_UNSET,
) -> Team:
    """
    Обновить имя/описание/задачу команды одной единицей работы (только лидер).
    """
    return _apply_update(db, team_id, acting_leader_id, name, description, problem_statement_id)

@atomic("rename_team", on_integrity_error=_membership_integrity_error)
def rename_team(db: Session, team_id: int, acting_leader_id: int, name: str) -> Team:
    return _apply_update(db, team_id, acting_leader_id, name=name)

@atomic("set_team_problem_statement")
def set_problem_statement(db: Session, team_id: int, acting_leader_id: int, problem_statement_id: Optional[int]) -> Team:
    """
    setResource: выбор (или снятие, если None) задачи лидером через Capacity Allocator.
    """
    return _apply_update(db, team_id, acting_leader_id, problem_statement_id=problem_statement_id)
