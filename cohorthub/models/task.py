#cohorthub/models/task.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Boolean, Date, UniqueConstraint, CheckConstraint, Index, func
)
from sqlalchemy.orm import relationship
from cohorthub.models.base import Base

SUBMISSION_SUBMITTED = "submitted"
SUBMISSION_GRADED = "graded"

class Task(Base):
    """
    Task — задание когорты с максимальным баллом.
    """
    __tablename__ = "tasks"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    title: str = Column(String(160), nullable=False, doc="Название задания")
    description: str = Column(String(2000), default="", doc="Описание")
    max_score: int = Column(Integer, nullable=False, default=100, doc="Максимальный балл")
    due_date = Column(Date, nullable=True, doc="Срок сдачи")
    is_active: bool = Column(Boolean, default=True, nullable=False)
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")

    submissions = relationship("Submission", back_populates="task", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', max_score={self.max_score})>"


class Submission(Base):
    """
    Submission — сдача задания участником. score учитывается в очках только при status == graded.
    """
    __tablename__ = "submissions"

    id: int = Column(Integer, primary_key=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_id: int = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    content: str = Column(String(4000), nullable=False, default="", doc="Ссылка или текст решения")
    status: str = Column(String(16), nullable=False, default=SUBMISSION_SUBMITTED, doc="submitted | graded")
    score: int = Column(Integer, nullable=True, doc="Оценка")
    feedback: str = Column(String(2000), nullable=True, doc="Отзыв проверяющего")
    graded_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    submitted_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    graded_at: datetime = Column(DateTime(timezone=True), nullable=True)

    task = relationship("Task", back_populates="submissions")

    __table_args__ = (
        UniqueConstraint("user_id", "task_id", name="uq_submissions_user_task"),
        CheckConstraint("score IS NULL OR score >= 0", name="ck_submissions_score"),
        Index("ix_submissions_user_status", "user_id", "status"),
    )

    def __repr__(self):
        return f"<Submission(id={self.id}, user_id={self.user_id}, task_id={self.task_id}, status='{self.status}', score={self.score})>"
