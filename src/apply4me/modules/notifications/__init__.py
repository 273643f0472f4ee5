"""
Notifications Module

In-app notifications for students and admin broadcasts.

API Endpoints:
- GET /notifications - Own notifications with unread count
- PATCH /notifications - Mark own notifications read
- GET /admin/notifications - Recent broadcasts with summary
- POST /admin/notifications - Send or schedule a broadcast
"""

from .admin_router import router as admin_router
from .router import router

__all__ = ["router", "admin_router"]
