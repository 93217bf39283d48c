#cohorthub/models/vote.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from cohorthub.models.base import Base

class Vote(Base):
    """
    Vote — оценка команды участником другой команды. Один голос на пару (voter, team).
    voter_team_id фиксирует команду голосующего на момент голоса.
    """
    __tablename__ = "votes"

    id: int = Column(Integer, primary_key=True)
    voter_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    voter_team_id: int = Column(Integer, nullable=True, doc="Команда голосующего в момент голоса")
    rating: int = Column(Integer, nullable=False, doc="Оценка 1..5")
    comment: str = Column(String(500), nullable=False, default="", doc="Комментарий")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    voter = relationship("User")
    team = relationship("Team")

    __table_args__ = (
        UniqueConstraint("voter_id", "team_id", name="uq_votes_voter_team"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_votes_rating"),
    )

    def __repr__(self):
        return f"<Vote(id={self.id}, voter_id={self.voter_id}, team_id={self.team_id}, rating={self.rating})>"
