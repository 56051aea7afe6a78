from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from educafric.api.dependencies import get_db, get_dispatcher
from educafric.schemas.academic.attendance_schema import AttendanceMark
from educafric.services.academic.attendance_service import StudentAttendanceService
from educafric.services.notification.dispatcher import NotificationDispatcher

router = APIRouter()


@router.post("/mark")
async def mark_attendance(
    mark: AttendanceMark,
    session: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Record a student's attendance and notify the parents"""
    service = StudentAttendanceService(session, dispatcher)
    result = await service.mark_attendance(mark)
    return {"success": True, **result}
