#cohorthub/models/problem_statement.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from cohorthub.models.base import Base

class ProblemStatement(Base):
    """
    ProblemStatement — разделяемый ресурс, который выбирают команды.
    selection_count всегда равен числу активных команд с problem_statement_id == id
    и меняется только условным UPDATE в Capacity Allocator.
    """
    __tablename__ = "problem_statements"

    id: int = Column(Integer, primary_key=True)
    external_id: int = Column(Integer, nullable=True, unique=True, doc="Номер из исходного CSV")
    title: str = Column(String(255), nullable=False, doc="Название")
    description: str = Column(String(4000), nullable=False, default="", doc="Описание")
    domain: str = Column(String(128), nullable=False, default="", doc="Домен")
    suggested_technologies: str = Column(String(512), nullable=True, doc="Рекомендуемые технологии")
    topic: str = Column(String(128), nullable=True, doc="Тема")
    selection_count: int = Column(Integer, nullable=False, default=0, doc="Сколько команд выбрали задачу")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    selecting_teams = relationship(
        "Team",
        primaryjoin="and_(ProblemStatement.id == Team.problem_statement_id, Team.is_active == True)",
        viewonly=True,
    )

    __table_args__ = (
        CheckConstraint("selection_count >= 0", name="ck_problem_statements_selection_count"),
    )

    def __repr__(self):
        return f"<ProblemStatement(id={self.id}, title='{self.title}', selection_count={self.selection_count})>"
