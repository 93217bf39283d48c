#cohorthub/schemas/problem_statement.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime

class ProblemStatementCreate(BaseModel):
    """
    ProblemStatementCreate — добавление задачи в каталог.
    """
    title: str = Field(..., examples=["Smart irrigation scheduler"])
    description: Optional[str] = Field("", description="Описание задачи")
    domain: Optional[str] = Field("", examples=["Agriculture"])
    suggested_technologies: Optional[str] = Field(None, examples=["Python, IoT"])
    topic: Optional[str] = None
    external_id: Optional[int] = Field(None, description="Номер из исходного каталога")

class ProblemStatementRead(BaseModel):
    id: int
    external_id: Optional[int] = None
    title: str
    description: str
    domain: str
    suggested_technologies: Optional[str] = None
    topic: Optional[str] = None
    selection_count: int = Field(..., description="Сколько команд выбрали задачу")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SelectionSnapshot(BaseModel):
    selection_count: int
    team_ids: List[int]
