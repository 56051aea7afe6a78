import logging
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from educafric.core.exceptions import NotFoundError
from educafric.models.academic.student_attendance import StudentAttendance
from educafric.models.auth.user import User
from educafric.models.school.school import School
from educafric.models.shared.enums import EventType
from educafric.schemas.academic.attendance_schema import AttendanceMark
from educafric.schemas.notification.notification_schema import NotificationEvent
from educafric.services.notification.dispatcher import NotificationDispatcher
from educafric.utils.formatting import serialize_dates, utcnow

logger = logging.getLogger(__name__)


class StudentAttendanceService:
    def __init__(self, db: AsyncSession, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    async def _get_user(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(and_(User.id == user_id, User.is_deleted == False))
        )
        return result.scalar_one_or_none()

    async def mark_attendance(self, mark: AttendanceMark) -> Dict[str, Any]:
        """Save an attendance mark, then announce it to the dispatcher."""
        student = await self._get_user(mark.student_id)
        if not student:
            raise NotFoundError(f"Student {mark.student_id} not found")

        attendance_date = mark.attendance_date or utcnow().date()
        record = StudentAttendance(
            school_id=student.school_id,
            student_id=student.id,
            class_name=mark.class_name,
            attendance_date=attendance_date,
            status=mark.status.value,
            notes=mark.notes,
            marked_by=mark.marked_by,
            created_by=mark.marked_by,
        )
        self.db.add(record)
        await self.db.commit()
        logger.info(f"Attendance {mark.status.value} recorded for student {student.id} on {attendance_date}")

        notification = None
        if mark.notify:
            notification = await self.dispatcher.process_event(
                await self._build_event(student, record, attendance_date))

        return {
            "attendance": serialize_dates({
                "id": record.id,
                "studentId": record.student_id,
                "schoolId": record.school_id,
                "className": record.class_name,
                "date": attendance_date,
                "status": record.status,
                "notes": record.notes,
                "markedBy": record.marked_by,
            }),
            "notification": notification,
        }

    async def _build_event(self, student: User, record: StudentAttendance,
                           attendance_date: date) -> NotificationEvent:
        school = await self.db.get(School, student.school_id) if student.school_id else None
        teacher = await self._get_user(record.marked_by) if record.marked_by else None
        return NotificationEvent(
            type=EventType.ATTENDANCE.value,
            school_id=student.school_id or 0,
            triggered_by=record.marked_by,
            data={
                "studentId": student.id,
                "studentName": student.full_name,
                "className": record.class_name,
                "date": attendance_date,
                "status": record.status,
                "notes": record.notes,
                "schoolName": school.name if school else None,
                "markedBy": teacher.full_name if teacher else None,
            },
        )
