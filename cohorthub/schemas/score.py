#cohorthub/schemas/score.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

class ScoreRead(BaseModel):
    user_id: int
    attendance_points: int
    task_points: int
    total_score: int
    score_updated_at: Optional[datetime] = None

class LeaderboardRow(BaseModel):
    """
    LeaderboardRow — строка рейтинга участников.
    """
    rank: int = Field(..., examples=[1])
    user_id: int
    username: str
    name: str
    team_id: Optional[int] = None
    attendance_points: int
    task_points: int
    total_score: int

class LeaderboardList(BaseModel):
    results: List[LeaderboardRow]
    total_count: int
    page: int
    page_size: int
