from enum import Enum

# Enums
class UserRole(str, Enum):
    DIRECTOR = "Director"
    TEACHER = "Teacher"
    STUDENT = "Student"
    PARENT = "Parent"
    COMMERCIAL = "Commercial"

class Language(str, Enum):
    FR = "fr"
    EN = "en"

class FeeStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"

class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK = "bank"
    MTN_MOMO = "mtn_momo"
    ORANGE_MONEY = "orange_money"
    STRIPE = "stripe"
    OTHER = "other"

class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"

class NotificationType(str, Enum):
    REMINDER = "reminder"
    OVERDUE = "overdue"
    RECEIPT = "receipt"
    ABSENCE = "absence"
    GRADE = "grade"
    PAYMENT = "payment"
    GENERAL = "general"

class NotificationStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"   # claimed by a drain
    SENT = "sent"
    FAILED = "failed"

class NotificationChannel(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    PWA = "pwa"
    SMS = "sms"

class ChannelStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    NOT_PROVIDED = "not_provided"

class EventType(str, Enum):
    ATTENDANCE = "attendance"
    GRADES = "grades"
    PAYMENTS = "payments"
    GEOLOCATION = "geolocation"
    ONLINE_CLASSES = "onlineClasses"
    SUBSCRIPTIONS = "subscriptions"

class WhatsAppMessageType(str, Enum):
    ABSENCE = "absence"
    GRADE = "grade"
    PAYMENT = "payment"
    MESSAGE = "message"
    GEOLOCATION = "geolocation"
    ONLINE_CLASS = "online_class"
    TIMETABLE = "timetable"

DEFAULT_JOB_CHANNELS = [
    NotificationChannel.EMAIL.value,
    NotificationChannel.WHATSAPP.value,
    NotificationChannel.PWA.value,
]
