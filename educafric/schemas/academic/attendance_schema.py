from datetime import date
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from educafric.models.shared.enums import AttendanceStatus


class AttendanceMark(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: int = Field(..., alias="studentId")
    status: AttendanceStatus
    attendance_date: Optional[date] = Field(None, alias="date")
    class_name: Optional[str] = Field(None, alias="className")
    notes: Optional[str] = None
    marked_by: Optional[int] = Field(None, alias="markedBy")
    notify: bool = True
