#cohorthub/crud/attendance.py
from datetime import date, datetime, timezone
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from cohorthub.core.concurrency import atomic
from cohorthub.core.exceptions import AttendanceNotFound, ValidationError
from cohorthub.crud.score import refresh_score_cache
from cohorthub.crud.user import require_user
from cohorthub.models.attendance import Attendance, ATTENDANCE_PRESENT, ATTENDANCE_STATUSES

logger = logging.getLogger("CohortHub.Attendance")

def _validate_status(status: str) -> str:
    if status not in ATTENDANCE_STATUSES:
        raise ValidationError(f"Attendance status must be one of: {', '.join(ATTENDANCE_STATUSES)}.")
    return status

def _to_date(day) -> date:
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    try:
        return date.fromisoformat(str(day))
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD.")

def get_attendance(db: Session, attendance_id: int) -> Attendance:
    attendance = db.get(Attendance, attendance_id)
    if attendance is None:
        raise AttendanceNotFound(f"Attendance record {attendance_id} not found.")
    return attendance

def get_user_attendance(db: Session, user_id: int, status: Optional[str] = None) -> List[Attendance]:
    query = db.query(Attendance).filter(Attendance.user_id == user_id)
    if status:
        query = query.filter(Attendance.status == status)
    return query.order_by(Attendance.date.desc(), Attendance.session).all()

@atomic("mark_attendance")
def mark_attendance(
    db: Session,
    user_id: int,
    day,
    session: str = "full-day",
    status: str = ATTENDANCE_PRESENT,
    remarks: Optional[str] = None,
    marked_by: Optional[int] = None,
) -> Attendance:
    """
    attendance-marked: создать или обновить отметку за (день, сессию) и пересчитать счёт.
    """
    user = require_user(db, user_id)
    day = _to_date(day)
    status = _validate_status(status)

    attendance = (
        db.query(Attendance)
        .filter(Attendance.user_id == user_id, Attendance.date == day, Attendance.session == session)
        .first()
    )
    if attendance:
        attendance.status = status
        attendance.remarks = remarks
        attendance.marked_by = marked_by
        attendance.marked_at = datetime.now(timezone.utc)
    else:
        attendance = Attendance(
            user_id=user_id,
            date=day,
            session=session,
            status=status,
            remarks=remarks,
            marked_by=marked_by,
        )
        db.add(attendance)

    refresh_score_cache(db, user)
    logger.info(f"Attendance for user {user_id} on {day} ({session}): {status}")
    return attendance

@atomic("update_attendance")
def update_attendance(db: Session, attendance_id: int, data: dict) -> Attendance:
    attendance = get_attendance(db, attendance_id)
    if "status" in data:
        attendance.status = _validate_status(data["status"])
    if "remarks" in data:
        attendance.remarks = data["remarks"]
    attendance.marked_at = datetime.now(timezone.utc)
    refresh_score_cache(db, require_user(db, attendance.user_id))
    logger.info(f"Updated attendance {attendance_id}")
    return attendance

@atomic("delete_attendance")
def delete_attendance(db: Session, attendance_id: int) -> bool:
    attendance = get_attendance(db, attendance_id)
    user = require_user(db, attendance.user_id)
    db.delete(attendance)
    refresh_score_cache(db, user)
    logger.info(f"Deleted attendance {attendance_id} of user {user.id}")
    return True
