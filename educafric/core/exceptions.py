from fastapi import HTTPException, status

class BaseAppException(HTTPException):
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)

class ValidationError(BaseAppException):
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

class NotFoundError(BaseAppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


# Notification-layer errors. These never reach HTTP callers: the dispatcher
# and queue convert them into result objects.

class NotificationError(Exception):
    """Base class for notification subsystem errors"""

class UnknownEventTypeError(NotificationError):
    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Unknown event type: {event_type}")

class TemplateNotFoundError(NotificationError, KeyError):
    def __init__(self, template_id: str, language: str):
        self.template_id = template_id
        self.language = language
        super().__init__(f"Template not found: {template_id} ({language})")

    def __str__(self):
        return self.args[0]
