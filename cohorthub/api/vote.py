#cohorthub/api/vote.py
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from cohorthub.schemas.vote import VoteIn, VoteRead, TeamRating, VotingProgressRead, TeamWithRating
from cohorthub.schemas.response import SuccessResponse
from cohorthub.crud.vote import (
    submit_vote,
    update_vote,
    delete_vote,
    get_vote,
    get_team_rating,
    get_team_votes,
    get_voting_history,
    get_teams_with_ratings,
    vote_completion_status,
)
from cohorthub.core.exceptions import VoteNotFound
from cohorthub.dependencies import get_db, get_current_active_user, get_current_staff_user
from cohorthub.models.user import User as UserModel

router = APIRouter(prefix="/votes", tags=["Votes"])

@router.get("/teams", response_model=List[TeamWithRating])
def list_teams_for_voting(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Команды с рейтингом и отметкой «уже голосовал».
    """
    return get_teams_with_ratings(db, user.id, search=search)

@router.get("/progress", response_model=VotingProgressRead)
def read_voting_progress(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    progress = vote_completion_status(db, user.id)
    return VotingProgressRead(
        voted_count=progress.voted_count,
        total_count=progress.total_count,
        completed=progress.completed,
    )

@router.get("/history", response_model=List[VoteRead])
def read_voting_history(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return get_voting_history(db, user.id)

@router.post("/teams/{team_id}", response_model=VoteRead, status_code=status.HTTP_201_CREATED)
def submit_vote_api(
    team_id: int,
    data: VoteIn,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return submit_vote(db, user.id, team_id, data.rating, data.comment)

@router.get("/teams/{team_id}/mine", response_model=VoteRead)
def read_my_vote(
    team_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    vote = get_vote(db, user.id, team_id)
    if vote is None:
        raise VoteNotFound("You have not voted for this team.")
    return vote

@router.put("/teams/{team_id}", response_model=VoteRead)
def update_vote_api(
    team_id: int,
    data: VoteIn,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return update_vote(db, user.id, team_id, data.rating, data.comment)

@router.delete("/teams/{team_id}", response_model=SuccessResponse)
def delete_vote_api(
    team_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    delete_vote(db, user.id, team_id)
    return SuccessResponse(result=team_id, detail="Vote deleted")

@router.get("/teams/{team_id}/rating", response_model=TeamRating)
def read_team_rating(
    team_id: int,
    db: Session = Depends(get_db)
):
    rating = get_team_rating(db, team_id)
    return TeamRating(team_id=team_id, **rating)

@router.get("/teams/{team_id}/votes", response_model=List[VoteRead])
def read_team_votes(
    team_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_staff_user)
):
    """
    Все голоса за команду (только менторы и админы).
    """
    return get_team_votes(db, team_id)
