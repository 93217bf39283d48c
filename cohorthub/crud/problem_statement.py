#cohorthub/crud/problem_statement.py
"""
Capacity Allocator: выбор задачи (problem statement) командами с лимитом
PROBLEM_STATEMENT_CAPACITY команд на задачу.

Лимит проверяется одним условным UPDATE (проверка и инкремент атомарны на
стороне БД), поэтому две команды, одновременно увидевшие count == 3, не могут
обе закоммитить выбор. Счётчик старой задачи уменьшается в той же транзакции.
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
import logging

from sqlalchemy import update, func
from sqlalchemy.orm import Session

from cohorthub.core import events
from cohorthub.core.concurrency import atomic
from cohorthub.core.exceptions import (
    AtCapacityError,
    CapacityCounterMismatch,
    ForbiddenError,
    ProblemStatementNotFound,
    TeamNotFound,
    ValidationError,
)
from cohorthub.core.settings import settings
from cohorthub.models.problem_statement import ProblemStatement
from cohorthub.models.team import Team

logger = logging.getLogger("CohortHub.Problems")

def get_problem_statement(db: Session, problem_statement_id: int) -> ProblemStatement:
    problem = db.get(ProblemStatement, problem_statement_id, populate_existing=True)
    if problem is None:
        raise ProblemStatementNotFound(f"Problem statement with id={problem_statement_id} not found.")
    return problem

def list_problem_statements(db: Session, search: Optional[str] = None, available_only: bool = False) -> List[ProblemStatement]:
    """
    Список задач с текущим числом выбравших команд (по алфавиту).
    """
    query = db.query(ProblemStatement)
    if search:
        val = f"%{search}%"
        query = query.filter(
            ProblemStatement.title.ilike(val)
            | ProblemStatement.description.ilike(val)
            | ProblemStatement.domain.ilike(val)
        )
    if available_only:
        query = query.filter(ProblemStatement.selection_count < settings.PROBLEM_STATEMENT_CAPACITY)
    return query.order_by(ProblemStatement.title).all()

@atomic("create_problem_statement")
def create_problem_statement(db: Session, data: dict) -> ProblemStatement:
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Problem statement title is required.")
    problem = ProblemStatement(
        external_id=data.get("external_id"),
        title=title,
        description=(data.get("description") or "").strip(),
        domain=(data.get("domain") or "").strip(),
        suggested_technologies=data.get("suggested_technologies"),
        topic=data.get("topic"),
        selection_count=0,
    )
    db.add(problem)
    db.flush()
    logger.info(f"Created problem statement '{problem.title}' (ID: {problem.id})")
    return problem

def selection_snapshot(db: Session, problem_statement_id: int) -> Dict[str, Any]:
    """
    Счётчик и фактическое множество выбравших команд; используется для сверки инварианта.
    """
    problem = get_problem_statement(db, problem_statement_id)
    team_ids = [
        row.id for row in db.query(Team.id)
        .filter(Team.problem_statement_id == problem_statement_id, Team.is_active.is_(True))
        .order_by(Team.id)
    ]
    return {"selection_count": problem.selection_count, "team_ids": team_ids}

# --- Операции внутри чужой единицы работы (без commit) ---

def acquire_selection(db: Session, team: Team, problem_statement_id: int) -> bool:
    """
    Перевести команду на задачу problem_statement_id. Возвращает False, если
    команда уже держит эту задачу. Поднимает AtCapacityError, если мест нет.
    """
    if team.problem_statement_id == problem_statement_id:
        return False
    get_problem_statement(db, problem_statement_id)

    result = db.execute(
        update(ProblemStatement)
        .where(
            ProblemStatement.id == problem_statement_id,
            ProblemStatement.selection_count < settings.PROBLEM_STATEMENT_CAPACITY,
        )
        .values(selection_count=ProblemStatement.selection_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AtCapacityError(
            f"Problem statement {problem_statement_id} has reached the maximum selection limit "
            f"of {settings.PROBLEM_STATEMENT_CAPACITY} teams.",
            problem_statement_id=problem_statement_id,
        )

    previous = team.problem_statement_id
    if previous is not None:
        _decrement(db, previous)
    team.problem_statement_id = problem_statement_id
    team.updated_at = datetime.now(timezone.utc)
    logger.info(f"Team {team.id} selected problem statement {problem_statement_id} (previous: {previous})")
    return True

def release_selection(db: Session, team: Team) -> bool:
    """Освободить задачу команды. Идемпотентно: False, если задачи нет."""
    previous = team.problem_statement_id
    if previous is None:
        return False
    _decrement(db, previous)
    team.problem_statement_id = None
    team.updated_at = datetime.now(timezone.utc)
    logger.info(f"Team {team.id} released problem statement {previous}")
    return True

def _decrement(db: Session, problem_statement_id: int) -> None:
    result = db.execute(
        update(ProblemStatement)
        .where(ProblemStatement.id == problem_statement_id, ProblemStatement.selection_count > 0)
        .values(selection_count=ProblemStatement.selection_count - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.error(f"Problem statement {problem_statement_id} counter already at zero while releasing")
        raise CapacityCounterMismatch(
            f"Problem statement {problem_statement_id} has no selection to release.",
            problem_statement_id=problem_statement_id,
        )

# --- Публичные операции ---

def _load_team_for(db: Session, team_id: int, acting_user_id: Optional[int]) -> Team:
    team = db.query(Team).filter(Team.id == team_id, Team.is_active.is_(True)).first()
    if team is None:
        raise TeamNotFound(f"Team with id={team_id} not found (or is inactive).")
    if acting_user_id is not None and not team.is_leader(acting_user_id):
        raise ForbiddenError("Only the team leader can change the problem statement.")
    return team

@atomic("select_problem_statement")
def select_problem_statement(
    db: Session,
    team_id: int,
    problem_statement_id: int,
    acting_user_id: Optional[int] = None,
) -> Team:
    """
    selectResource: закрепить задачу за командой, освободив предыдущую.
    """
    team = _load_team_for(db, team_id, acting_user_id)
    if acquire_selection(db, team, problem_statement_id):
        events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    return team

@atomic("release_problem_statement")
def release_problem_statement(db: Session, team_id: int, acting_user_id: Optional[int] = None) -> bool:
    """
    releaseResource: идемпотентно, no-op если задача не выбрана.
    """
    team = _load_team_for(db, team_id, acting_user_id)
    released = release_selection(db, team)
    if released:
        events.queue(db, events.TEAM_CHANGED, team_id=team.id)
    return released

def count_selections(db: Session, problem_statement_id: int) -> int:
    return (
        db.query(func.count(Team.id))
        .filter(Team.problem_statement_id == problem_statement_id, Team.is_active.is_(True))
        .scalar()
    )
