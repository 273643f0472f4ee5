"""
Applications Module

Student applications and the admin payment verification workflow:
1. Student submits payment details for an application
2. Admin verifies or rejects the payment
3. Student is notified in-app and by email
4. Every decision is appended to the verification audit log

API Endpoints:
- POST /payments/submit - Student submits payment details
- POST /payments/verify - Admin decision
- GET /payments/verify - Admin payment queue
- GET /payments/verify/{id}/history - Decision audit trail
"""

from .router import router

__all__ = ["router"]
