#cohorthub/api/attendance.py
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from cohorthub.schemas.attendance import AttendanceMark, AttendanceUpdate, AttendanceRead
from cohorthub.schemas.response import SuccessResponse
from cohorthub.crud.attendance import (
    mark_attendance,
    update_attendance,
    delete_attendance,
    get_user_attendance,
)
from cohorthub.dependencies import get_db, get_current_active_user, get_current_staff_user
from cohorthub.models.user import User as UserModel

router = APIRouter(prefix="/attendance", tags=["Attendance"])

@router.post("/", response_model=AttendanceRead, status_code=status.HTTP_201_CREATED)
def mark_attendance_api(
    data: AttendanceMark,
    db: Session = Depends(get_db),
    staff: UserModel = Depends(get_current_staff_user)
):
    """
    Отметить посещаемость (повторная отметка за тот же день и сессию перезаписывает статус).
    """
    return mark_attendance(
        db,
        data.user_id,
        data.date,
        session=data.session,
        status=data.status,
        remarks=data.remarks,
        marked_by=staff.id,
    )

@router.get("/me", response_model=List[AttendanceRead])
def read_my_attendance(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return get_user_attendance(db, user.id, status=status_filter)

@router.patch("/{attendance_id}", response_model=AttendanceRead)
def update_attendance_api(
    attendance_id: int,
    data: AttendanceUpdate,
    db: Session = Depends(get_db),
    staff: UserModel = Depends(get_current_staff_user)
):
    return update_attendance(db, attendance_id, data.model_dump(exclude_unset=True))

@router.delete("/{attendance_id}", response_model=SuccessResponse)
def delete_attendance_api(
    attendance_id: int,
    db: Session = Depends(get_db),
    staff: UserModel = Depends(get_current_staff_user)
):
    delete_attendance(db, attendance_id)
    return SuccessResponse(result=attendance_id, detail="Attendance record deleted")
