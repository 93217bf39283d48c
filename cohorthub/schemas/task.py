#cohorthub/schemas/task.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import date, datetime

class TaskCreate(BaseModel):
    """
    TaskCreate — новое задание когорты.
    """
    title: str = Field(..., examples=["Build a REST API"], description="Название задания")
    description: Optional[str] = Field("", description="Описание")
    max_score: int = Field(100, examples=[100], description="Максимальный балл")
    due_date: Optional[date] = Field(None, examples=["2026-06-01"], description="Срок сдачи")

class TaskRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    max_score: int
    due_date: Optional[date] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class SubmissionCreate(BaseModel):
    content: str = Field(..., examples=["https://github.com/me/rest-api"], description="Ссылка или текст решения")

class GradeIn(BaseModel):
    score: int = Field(..., examples=[85], description="Балл 0..max_score")
    feedback: Optional[str] = Field(None, description="Отзыв")

class SubmissionRead(BaseModel):
    id: int
    user_id: int
    task_id: int
    content: str
    status: str
    score: Optional[int] = None
    feedback: Optional[str] = None
    graded_by: Optional[int] = None
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
