from educafric.db.base import Base
from educafric.models.school.school import School
from educafric.models.auth.user import User
from educafric.models.auth.parent_student_relation import ParentStudentRelation
from educafric.models.fees.fee_structure import FeeStructure
from educafric.models.fees.assigned_fee import AssignedFee
from educafric.models.fees.fee_payment import FeePayment, FeePaymentItem
from educafric.models.academic.student_attendance import StudentAttendance
from educafric.models.notification.notification_job import NotificationJob
from educafric.models.notification.in_app_notification import InAppNotification


__all__ = [
    "Base",
    "School",
    "User",
    "ParentStudentRelation",
    "FeeStructure",
    "AssignedFee",
    "FeePayment",
    "FeePaymentItem",
    "StudentAttendance",
    "NotificationJob",
    "InAppNotification",
]
