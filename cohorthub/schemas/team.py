#cohorthub/schemas/team.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime

from cohorthub.schemas.user import UserShort

class TeamBase(BaseModel):
    """
    TeamBase — базовая схема для команды.
    """
    name: str = Field(..., examples=["Byte Busters"], description="Название команды (3-50 символов)")
    description: Optional[str] = Field("", examples=["We build tools for local farmers"], description="Описание команды")

class TeamCreate(TeamBase):
    """
    TeamCreate — создание новой команды; создатель становится лидером.
    """
    problem_statement_id: Optional[int] = Field(None, description="Задача, выбираемая сразу при создании")

class TeamUpdate(BaseModel):
    """
    TeamUpdate — обновление данных команды (все поля опциональны).
    Явный problem_statement_id = null снимает выбор задачи.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    problem_statement_id: Optional[int] = None

class TeamLeave(BaseModel):
    transfer_to_user_id: Optional[int] = Field(None, description="Новый лидер, если уходит лидер")

class TeamTransfer(BaseModel):
    new_leader_id: int = Field(..., description="Участник, который станет лидером")

class ProblemStatementSelect(BaseModel):
    problem_statement_id: int

class TeamMemberRead(BaseModel):
    user_id: int
    role: str
    joined_at: Optional[datetime] = None
    user: Optional[UserShort] = None

    model_config = ConfigDict(from_attributes=True)

class TeamRead(TeamBase):
    """
    TeamRead — схема для выдачи команды (response).
    """
    id: int
    leader_id: int = Field(..., description="ID лидера")
    problem_statement_id: Optional[int] = Field(None, description="Выбранная задача")
    max_members: int
    member_count: int
    is_active: bool = Field(True, description="Soft-delete флаг")
    members: List[TeamMemberRead] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, description="Дата создания")
    updated_at: Optional[datetime] = Field(None, description="Дата обновления")

    model_config = ConfigDict(from_attributes=True)

class TeamList(BaseModel):
    results: List[TeamRead]
    total_count: int
