from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, func
)
from cohorthub.models.base import Base

class User(Base):
    """
    User — участник когорты. Поле team_id хранит денормализованную ссылку на команду,
    которую пишет только Membership Ledger в той же транзакции, что и Team.members.
    total_score хранит кэш, который пересчитывает Score Aggregator.
    """
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    username: str = Column(String(50), unique=True, nullable=False, index=True, doc="Уникальный username")
    email: str = Column(String(255), unique=True, nullable=False, index=True, doc="Email")
    full_name: str = Column(String(128), nullable=True, doc="Полное имя")
    role: str = Column(String(24), default="participant", nullable=False, doc="participant, mentor, admin")
    is_active: bool = Column(Boolean, default=True, nullable=False, doc="Аккаунт активен")
    is_superuser: bool = Column(Boolean, default=False, nullable=False, doc="Является ли суперюзером")

    team_id: int = Column(Integer, nullable=True, index=True, doc="Текущая активная команда (write-through кэш)")

    total_score: int = Column(Integer, default=0, nullable=False, doc="Кэш: attendance_points + task_points")
    attendance_points: int = Column(Integer, default=0, nullable=False, doc="Кэш: очки за посещаемость")
    task_points: int = Column(Integer, default=0, nullable=False, doc="Кэш: очки за проверенные задачи")
    score_updated_at: datetime = Column(DateTime(timezone=True), nullable=True, doc="Время последнего пересчёта")
    last_voted_at: datetime = Column(DateTime(timezone=True), nullable=True, doc="Время последнего голоса")

    version: int = Column(Integer, nullable=False, default=1, doc="Оптимистичная блокировка")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', team_id={self.team_id})>"
