#cohorthub/models/attendance.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint, Index, func
)
from cohorthub.models.base import Base

ATTENDANCE_PRESENT = "present"
ATTENDANCE_STATUSES = ("present", "absent", "late")

class Attendance(Base):
    """
    Attendance — отметка посещаемости за день и сессию. Очки дают только записи со status == present.
    """
    __tablename__ = "attendance"

    id: int = Column(Integer, primary_key=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False, doc="День")
    session: str = Column(String(32), nullable=False, default="full-day", doc="Сессия")
    status: str = Column(String(16), nullable=False, default=ATTENDANCE_PRESENT, doc="present | absent | late")
    remarks: str = Column(String(500), nullable=True)
    marked_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    marked_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "date", "session", name="uq_attendance_user_day_session"),
        Index("ix_attendance_user_status", "user_id", "status"),
    )

    def __repr__(self):
        return f"<Attendance(id={self.id}, user_id={self.user_id}, date={self.date}, status='{self.status}')>"
