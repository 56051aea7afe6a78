from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from educafric.api.dependencies import get_db, get_dispatcher, get_scheduler
from educafric.schemas.fees.payment_schema import PaymentCreate, PaymentResponse
from educafric.schemas.notification.notification_schema import NotificationJobListResponse
from educafric.services.fees.payment_service import PaymentService
from educafric.services.notification.dispatcher import NotificationDispatcher
from educafric.services.notification.queue_service import NotificationQueueService
from educafric.workers.scheduler import NotificationScheduler

router = APIRouter()


@router.post("/payments", response_model=PaymentResponse)
async def record_payment(
    payment: PaymentCreate,
    school_id: Optional[int] = Query(None),
    recorded_by: Optional[int] = Query(None),
    session: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Record a payment and queue the receipt notice"""
    service = PaymentService(session, dispatcher.fee_service(session))
    return await service.record_payment(payment, school_id=school_id, recorded_by=recorded_by)


@router.post("/payments/{payment_id}/notify")
async def resend_receipt(
    payment_id: int,
    session: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Queue the receipt notice of an existing payment again"""
    service = PaymentService(session, dispatcher.fee_service(session))
    queued = await service.resend_receipt(payment_id)
    return {"success": queued, "notificationQueued": queued}


@router.post("/notifications/run")
async def run_notifications(scheduler: NotificationScheduler = Depends(get_scheduler)):
    """Run one notification cycle now: drain, overdue scan, upcoming scan"""
    summary = await scheduler.run_cycle()
    return {"success": not summary["errors"], "summary": summary}


@router.get("/notifications", response_model=NotificationJobListResponse)
async def list_notifications(
    status: Optional[str] = Query(None),
    notification_type: Optional[str] = Query(None, alias="type"),
    student_id: Optional[int] = Query(None, alias="studentId"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    session: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """List queued notifications"""
    jobs = await dispatcher.queue_service(session).list_jobs(
        status=status,
        notification_type=notification_type,
        student_id=student_id,
        skip=skip,
        limit=limit,
    )
    return {
        "success": True,
        "total": len(jobs),
        "notifications": [NotificationQueueService.serialize(job) for job in jobs],
    }
