from fastapi import APIRouter
from educafric.api.v1.endpoints.academic import attendance
from educafric.api.v1.endpoints.fees import payments
from educafric.api.v1.endpoints.notification import test_notifications

api_router = APIRouter()

# Fees routes
api_router.include_router(payments.router, prefix="/fees", tags=["Fees"])

# Academic routes
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])

# Debug routes, mounted outside the versioned prefix
test_notifications_router = APIRouter()
test_notifications_router.include_router(
    test_notifications.router, prefix="/test-notifications", tags=["Test Notifications"]
)
