#cohorthub/schemas/attendance.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import date as date_type, datetime

class AttendanceMark(BaseModel):
    """
    AttendanceMark — отметка за (день, сессию); повторная отметка перезаписывает статус.
    """
    user_id: int
    date: date_type
    session: str = Field("full-day", examples=["morning"])
    status: str = Field("present", examples=["present"], description="present, absent или late")
    remarks: Optional[str] = None

class AttendanceUpdate(BaseModel):
    status: Optional[str] = None
    remarks: Optional[str] = None

class AttendanceRead(BaseModel):
    id: int
    user_id: int
    date: date_type
    session: str
    status: str
    remarks: Optional[str] = None
    marked_by: Optional[int] = None
    marked_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
