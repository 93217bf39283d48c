#cohorthub/api/score.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from cohorthub.schemas.score import ScoreRead, LeaderboardList
from cohorthub.crud.score import get_score, recompute_score, leaderboard_rank
from cohorthub.core.settings import settings
from cohorthub.dependencies import get_db, get_current_active_user, get_current_staff_user
from cohorthub.models.user import User as UserModel

router = APIRouter(prefix="/scores", tags=["Scores"])

@router.get("/leaderboard", response_model=LeaderboardList)
def read_leaderboard(
    search: Optional[str] = Query(None),
    team_id: Optional[int] = Query(None),
    only_active: bool = Query(True),
    sort_by: str = Query("total_score", description="total_score или name"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Рейтинг участников по кэшированному счёту; запрос ничего не пишет в БД.
    """
    filters = {"search": search, "team_id": team_id, "only_active": only_active}
    size = page_size or settings.LEADERBOARD_PAGE_SIZE
    rows, total = leaderboard_rank(db, filters=filters, sort_by=sort_by, page=page, page_size=size)
    return LeaderboardList(results=rows, total_count=total, page=page, page_size=size)

@router.get("/me", response_model=ScoreRead)
def read_my_score(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return get_score(db, user.id)

@router.get("/{user_id}", response_model=ScoreRead)
def read_score(
    user_id: int,
    db: Session = Depends(get_db)
):
    return get_score(db, user_id)

@router.post("/{user_id}/recompute", response_model=ScoreRead)
def recompute_score_api(
    user_id: int,
    db: Session = Depends(get_db),
    staff: UserModel = Depends(get_current_staff_user)
):
    recompute_score(db, user_id)
    return get_score(db, user_id)
