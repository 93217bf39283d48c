#cohorthub/models/team.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Boolean, UniqueConstraint, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from cohorthub.models.base import Base

ROLE_LEADER = "leader"
ROLE_MEMBER = "member"

class Team(Base):
    """
    Team — команда участников. Источник истины о составе; leader всегда
    присутствует в members с ролью leader. Soft-delete через is_active.

    name_key хранит lower(name) для активных команд и NULL после деактивации, так что
    уникальность имени без учёта регистра держится на уровне БД только среди активных.
    """
    __tablename__ = "teams"

    id: int = Column(Integer, primary_key=True)
    name: str = Column(String(64), nullable=False, doc="Название команды")
    name_key: str = Column(String(64), nullable=True, unique=True, index=True, doc="lower(name) для активных команд")
    description: str = Column(String(255), nullable=False, default="", doc="Описание")
    leader_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True, doc="ID лидера")
    problem_statement_id: int = Column(
        Integer, ForeignKey("problem_statements.id"), nullable=True, index=True, doc="Выбранная задача"
    )
    max_members: int = Column(Integer, nullable=False, default=6, doc="Максимальный размер команды")
    is_active: bool = Column(Boolean, default=True, nullable=False, index=True, doc="Soft-delete флаг")
    version: int = Column(Integer, nullable=False, default=1, doc="Оптимистичная блокировка")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")
    deactivated_at: datetime = Column(DateTime(timezone=True), nullable=True, doc="Дата деактивации")

    members = relationship(
        "TeamMember",
        back_populates="team",
        cascade="all, delete-orphan",
        order_by="TeamMember.id",
    )
    problem_statement = relationship("ProblemStatement")

    __mapper_args__ = {"version_id_col": version}

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.max_members

    def member_ids(self) -> list:
        return [m.user_id for m in self.members]

    def find_member(self, user_id: int):
        return next((m for m in self.members if m.user_id == user_id), None)

    def is_member(self, user_id: int) -> bool:
        return self.find_member(user_id) is not None

    def is_leader(self, user_id: int) -> bool:
        return self.leader_id == user_id

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}', members={len(self.members)})>"


class TeamMember(Base):
    """
    Участник команды. user_id уникален: пользователь состоит не более чем в одной команде.
    """
    __tablename__ = "team_members"

    id: int = Column(Integer, primary_key=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role: str = Column(String(16), nullable=False, default=ROLE_MEMBER, doc="leader | member")
    joined_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    team = relationship("Team", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_team_members_user"),
        CheckConstraint("role IN ('leader', 'member')", name="ck_team_members_role"),
    )

    def __repr__(self):
        return f"<TeamMember(team_id={self.team_id}, user_id={self.user_id}, role='{self.role}')>"
