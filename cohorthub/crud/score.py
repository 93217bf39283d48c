#cohorthub/crud/score.py
"""
Score Aggregator.

Счёт участника считается как чистая функция от двух источников:
    attendance_points = ATTENDANCE_POINTS * число записей посещаемости со status == present
    task_points       = сумма score по проверенным (graded) сдачам
    total_score       = attendance_points + task_points

Результат хранится на User как кэш и пересчитывается после каждого события,
влияющего на источники. Если чтение источника падает, кэш не трогается и
поднимается SourceReadFailure.

Кэш пишется отдельным UPDATE по колонкам счёта, мимо version строки User:
пересчёт не конфликтует с изменениями членства и голосованием.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple, Dict, Any
import logging

from sqlalchemy import func, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from cohorthub.core import events
from cohorthub.core.concurrency import atomic, is_lock_conflict, is_timeout
from cohorthub.core.exceptions import SourceReadFailure, ValidationError
from cohorthub.core.settings import settings
from cohorthub.crud.user import require_user
from cohorthub.models.attendance import Attendance, ATTENDANCE_PRESENT
from cohorthub.models.task import Submission, SUBMISSION_GRADED
from cohorthub.models.user import User

logger = logging.getLogger("CohortHub.Scores")

@dataclass(frozen=True)
class ScoreSnapshot:
    user_id: int
    attendance_points: int
    task_points: int

    @property
    def total_score(self) -> int:
        return self.attendance_points + self.task_points

def _is_transient(e: SQLAlchemyError) -> bool:
    if isinstance(e, PoolTimeoutError):
        return True
    return isinstance(e, OperationalError) and (is_lock_conflict(e) or is_timeout(e))

def compute_score(db: Session, user_id: int) -> ScoreSnapshot:
    """
    Прочитать оба источника и посчитать счёт, ничего не записывая.
    Ожидание блокировки и таймауты пробрасываются как есть, их обрабатывает atomic.
    """
    try:
        present_days = (
            db.query(func.count(Attendance.id))
            .filter(Attendance.user_id == user_id, Attendance.status == ATTENDANCE_PRESENT)
            .scalar()
        )
        task_points = (
            db.query(func.coalesce(func.sum(Submission.score), 0))
            .filter(
                Submission.user_id == user_id,
                Submission.status == SUBMISSION_GRADED,
                Submission.score.isnot(None),
            )
            .scalar()
        )
    except SQLAlchemyError as e:
        if _is_transient(e):
            raise
        logger.error(f"Failed to read score sources for user {user_id}: {e}")
        raise SourceReadFailure(f"Failed to read score sources for user {user_id}.", user_id=user_id) from e
    return ScoreSnapshot(
        user_id=user_id,
        attendance_points=int(present_days or 0) * settings.ATTENDANCE_POINTS,
        task_points=int(task_points or 0),
    )

def refresh_score_cache(db: Session, user: User) -> ScoreSnapshot:
    """
    Пересчитать и записать кэш внутри текущей единицы работы.
    Несохранённые изменения источников сначала сбрасываются в БД.
    """
    db.flush()
    snapshot = compute_score(db, user.id)
    previous = user.total_score
    values = {
        "attendance_points": snapshot.attendance_points,
        "task_points": snapshot.task_points,
        "total_score": snapshot.total_score,
        "score_updated_at": datetime.now(timezone.utc),
    }
    # Core UPDATE: version и updated_at строки не меняются
    db.execute(
        update(User.__table__)
        .where(User.__table__.c.id == user.id)
        .values(updated_at=User.__table__.c.updated_at, **values)
    )
    for key, value in values.items():
        set_committed_value(user, key, value)
    events.queue(db, events.SCORE_UPDATED, user_id=user.id)
    logger.info(f"Score for user {user.id}: {previous} -> {snapshot.total_score}")
    return snapshot

@atomic("recompute_score")
def recompute_score(db: Session, user_id: int) -> int:
    """
    recomputeScore: идемпотентно, возвращает новый total_score.
    """
    user = require_user(db, user_id)
    return refresh_score_cache(db, user).total_score

def recompute_scores(db: Session, user_ids: Iterable[int]) -> Dict[int, int]:
    """
    Пересчитать несколько участников, каждого в своей короткой единице работы.
    """
    return {user_id: recompute_score(db, user_id) for user_id in user_ids}

def get_score(db: Session, user_id: int) -> Dict[str, Any]:
    """
    Кэшированный счёт участника без пересчёта.
    """
    user = require_user(db, user_id)
    return {
        "user_id": user.id,
        "attendance_points": user.attendance_points,
        "task_points": user.task_points,
        "total_score": user.total_score,
        "score_updated_at": user.score_updated_at,
    }

_SORTS = ("total_score", "name")

def leaderboard_rank(
    db: Session,
    filters: Optional[dict] = None,
    sort_by: str = "total_score",
    page: int = 1,
    page_size: Optional[int] = None,
    recompute: bool = False,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Рейтинг участников: взять кэшированный счёт каждого подходящего пользователя
    (или пересчитать его при recompute=True), отсортировать и вернуть страницу.
    Возвращает (rows, total).

    Кэш обновляется при каждой оценке и отметке посещаемости, поэтому чтение
    рейтинга по умолчанию ничего не пишет. Пересчёт стоит O(n·m), что приемлемо
    для когорты в сотни человек.
    """
    if sort_by not in _SORTS:
        raise ValidationError(f"Unknown sort '{sort_by}'. Use one of: {', '.join(_SORTS)}.")
    filters = filters or {}
    page_size = page_size or settings.LEADERBOARD_PAGE_SIZE
    page = max(page, 1)

    query = db.query(User).filter(User.role == filters.get("role", "participant"))
    if filters.get("only_active", True):
        query = query.filter(User.is_active.is_(True))
    if filters.get("team_id") is not None:
        query = query.filter(User.team_id == filters["team_id"])
    if filters.get("search"):
        val = f"%{filters['search']}%"
        query = query.filter(User.username.ilike(val) | User.full_name.ilike(val))
    users = query.all()

    if recompute and users:
        recompute_scores(db, [u.id for u in users])
        users = db.query(User).filter(User.id.in_([u.id for u in users])).populate_existing().all()

    if sort_by == "name":
        users.sort(key=lambda u: ((u.full_name or u.username).lower(), u.id))
    else:
        users.sort(key=lambda u: (-u.total_score, (u.full_name or u.username).lower(), u.id))

    total = len(users)
    offset = (page - 1) * page_size
    rows = []
    for index, user in enumerate(users[offset:offset + page_size]):
        rows.append({
            "rank": offset + index + 1,
            "user_id": user.id,
            "username": user.username,
            "name": user.full_name or user.username,
            "team_id": user.team_id,
            "attendance_points": user.attendance_points,
            "task_points": user.task_points,
            "total_score": user.total_score,
        })
    return rows, total
