#cohorthub/schemas/user.py
from pydantic import BaseModel, Field, EmailStr, ConfigDict, constr
from typing import Optional
from datetime import datetime

class UserBase(BaseModel):
    """
    UserBase — базовая схема участника.
    """
    username: constr(min_length=3, max_length=50) = Field(..., examples=["john_doe"], description="Уникальный username")
    email: EmailStr = Field(..., examples=["john.doe@example.com"], description="Email пользователя")
    full_name: Optional[str] = Field(None, examples=["John Doe"], description="Полное имя")

class UserCreate(UserBase):
    role: str = Field("participant", examples=["participant"], description="participant, mentor или admin")
    is_active: bool = Field(True, description="Пользователь активен")
    is_superuser: bool = Field(False, description="Является суперюзером (админ)")

class UserShort(BaseModel):
    """
    UserShort — минимальная карточка пользователя для вложенных ответов.
    """
    id: int
    username: str
    full_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class UserRead(UserBase):
    """
    UserRead — схема для выдачи пользователя (response).
    """
    id: int
    role: str
    is_active: bool
    team_id: Optional[int] = Field(None, description="Текущая команда")
    total_score: int = Field(0, description="Кэшированный счёт")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
