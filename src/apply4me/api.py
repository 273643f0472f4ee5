from fastapi import APIRouter

from apply4me.modules.applications import router as payments_router
from apply4me.modules.notifications import admin_router as admin_notifications_router
from apply4me.modules.notifications import router as notifications_router

api_router = APIRouter()

api_router.include_router(payments_router, prefix="/payments", tags=["Payments"])

api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])

api_router.include_router(
    admin_notifications_router,
    prefix="/admin/notifications",
    tags=["Admin - Notifications"],
)
