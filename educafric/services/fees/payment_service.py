import logging
import secrets
import string
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from educafric.core.exceptions import NotFoundError, ValidationError
from educafric.models.auth.user import User
from educafric.models.fees.assigned_fee import AssignedFee
from educafric.models.fees.fee_payment import FeePayment, FeePaymentItem
from educafric.models.shared.enums import FeeStatus
from educafric.schemas.fees.payment_schema import PaymentCreate
from educafric.services.notification.fee_notification_service import FeeNotificationService
from educafric.templates.messages import translate_payment_method
from educafric.utils.formatting import format_amount, format_date, utcnow

logger = logging.getLogger(__name__)

OUTSTANDING_STATUSES = [FeeStatus.PENDING.value, FeeStatus.PARTIAL.value, FeeStatus.OVERDUE.value]


def generate_receipt_number(school_id: int) -> str:
    """REC-<school>-<epoch ms>-<4 chars>"""
    suffix = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(4))
    return f"REC-{school_id}-{int(utcnow().timestamp() * 1000)}-{suffix}"


class PaymentService:
    """Record fee payments against a student's outstanding fees."""

    def __init__(self, db: AsyncSession, fee_notifications: FeeNotificationService):
        self.db = db
        self.fee_notifications = fee_notifications
        self.currency = fee_notifications.config.currency

    async def _get_student(self, student_id: int) -> User:
        result = await self.db.execute(
            select(User).where(and_(User.id == student_id, User.is_deleted == False))
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError(f"Student {student_id} not found")
        return student

    async def _outstanding_fees(self, school_id: int, student_id: int,
                                assigned_fee_ids: Optional[List[int]]) -> List[AssignedFee]:
        query = select(AssignedFee).where(
            and_(
                AssignedFee.school_id == school_id,
                AssignedFee.student_id == student_id,
                AssignedFee.status.in_(OUTSTANDING_STATUSES),
                AssignedFee.is_deleted == False,
            )
        )
        if assigned_fee_ids:
            query = query.where(AssignedFee.id.in_(assigned_fee_ids))
        result = await self.db.execute(query.order_by(AssignedFee.due_date, AssignedFee.id))
        return list(result.scalars().all())

    async def record_payment(self, payment_in: PaymentCreate, school_id: Optional[int] = None,
                             recorded_by: Optional[int] = None) -> Dict[str, Any]:
        """
        Store the payment, apply it to the oldest outstanding fees first and
        queue a receipt notice. The payment is committed before the notice is
        queued; a failed notice never undoes the payment.
        """
        student = await self._get_student(payment_in.student_id)
        school_id = school_id or student.school_id
        if school_id is None:
            raise ValidationError("Student is not attached to a school")

        now = utcnow()
        receipt_number = generate_receipt_number(school_id)
        payment = FeePayment(
            school_id=school_id,
            student_id=student.id,
            amount=payment_in.amount,
            payment_method=payment_in.payment_method,
            transaction_ref=payment_in.transaction_ref,
            receipt_number=receipt_number,
            status="completed",
            notes=payment_in.notes,
            recorded_by=recorded_by,
            created_by=recorded_by,
        )
        self.db.add(payment)
        await self.db.flush()

        remaining = payment_in.amount
        applied: List[Dict[str, Any]] = []
        for fee in await self._outstanding_fees(school_id, student.id, payment_in.assigned_fee_ids):
            if remaining <= 0:
                break
            amount_to_apply = min(remaining, fee.balance_amount)
            if amount_to_apply <= 0:
                continue
            fee.paid_amount = (fee.paid_amount or 0) + amount_to_apply
            fee.balance_amount = fee.final_amount - fee.paid_amount
            fee.status = FeeStatus.PAID.value if fee.balance_amount == 0 else FeeStatus.PARTIAL.value
            fee.last_payment_date = now
            fee.paid_date = now if fee.balance_amount == 0 else None
            fee.updated_by = recorded_by

            self.db.add(FeePaymentItem(payment_id=payment.id, assigned_fee_id=fee.id, amount=amount_to_apply))
            applied.append({
                "assignedFeeId": fee.id,
                "amountApplied": amount_to_apply,
                "newBalance": fee.balance_amount,
                "newStatus": fee.status,
            })
            remaining -= amount_to_apply

        excess = max(remaining, 0)
        payment.extra_data = {"appliedTo": applied, "excessAmount": excess}
        await self.db.commit()
        logger.info(f"Recorded payment {payment.id} of {payment_in.amount} {self.currency} for student {student.id}")

        notification_queued = await self._queue_receipt(student.id, school_id, receipt_number,
                                                        payment_in.amount, payment_in.payment_method)
        return {
            "success": True,
            "payment": self.serialize(payment),
            "receipt": {
                "receiptNumber": receipt_number,
                "amount": payment_in.amount,
                "formattedAmount": format_amount(payment_in.amount, "fr", self.currency),
                "paymentMethod": translate_payment_method(payment_in.payment_method, "fr"),
                "studentName": student.full_name,
                "date": format_date(now, "fr", self.fee_notifications.config.timezone),
            },
            "appliedTo": applied,
            "excessAmount": excess,
            "notificationQueued": notification_queued,
        }

    async def _queue_receipt(self, student_id: int, school_id: int, receipt_number: str,
                             amount: int, payment_method: str) -> bool:
        try:
            job = await self.fee_notifications.send_receipt_notification(
                student_id, school_id, receipt_number, amount, payment_method)
            return job is not None
        except Exception:
            logger.exception("Failed to queue receipt notice for %s", receipt_number)
            await self.db.rollback()
            return False

    async def get_payment(self, payment_id: int) -> FeePayment:
        payment = await self.db.get(FeePayment, payment_id)
        if not payment or payment.is_deleted:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    async def resend_receipt(self, payment_id: int) -> bool:
        payment = await self.get_payment(payment_id)
        return await self._queue_receipt(payment.student_id, payment.school_id, payment.receipt_number,
                                         payment.amount, payment.payment_method)

    @staticmethod
    def serialize(payment: FeePayment) -> Dict[str, Any]:
        return {
            "id": payment.id,
            "schoolId": payment.school_id,
            "studentId": payment.student_id,
            "amount": payment.amount,
            "paymentMethod": payment.payment_method,
            "transactionRef": payment.transaction_ref,
            "receiptNumber": payment.receipt_number,
            "status": payment.status,
            "notes": payment.notes,
            "recordedBy": payment.recorded_by,
        }
