#cohorthub/schemas/vote.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from cohorthub.schemas.team import TeamRead

class VoteIn(BaseModel):
    """
    VoteIn — оценка команды (1-5) и обязательный комментарий.
    Диапазон проверяется в движке, чтобы ошибка была invalid_rating.
    """
    rating: int = Field(..., examples=[4], description="Оценка 1..5")
    comment: str = Field(..., examples=["Clean demo, clear pitch"], description="Комментарий (до 500 символов)")

class VoteRead(BaseModel):
    id: int
    voter_id: int
    team_id: int
    voter_team_id: Optional[int] = None
    rating: int
    comment: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class TeamRating(BaseModel):
    team_id: int
    average_rating: float
    total_votes: int

class VotingProgressRead(BaseModel):
    voted_count: int
    total_count: int
    completed: bool

class TeamWithRating(BaseModel):
    team: TeamRead
    average_rating: float
    total_votes: int
    is_own_team: bool
    has_voted: bool
