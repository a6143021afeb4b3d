from .base import Base
from .user import User
from .approval_request import ApprovalRequest
from .notification import AdminNotification, Notification

__all__ = [
    "Base",
    "User",
    "ApprovalRequest",
    "Notification",
    "AdminNotification",
]
