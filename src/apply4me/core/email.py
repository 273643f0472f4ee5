"""
Email Service using Resend

Handles sending emails for the payment verification flow and admin
broadcasts. When RESEND_API_KEY is not configured, emails are logged
instead of sent.
"""

import asyncio
import logging
from decimal import Decimal
from html import escape

import resend

from apply4me.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = settings.resend_api_key

_BASE_STYLES = """
            body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
            .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
            .header { color: #1e3a8a; margin-bottom: 24px; }
            .details-box { background-color: #f9fafb; border: 1px solid #e5e7eb; padding: 16px; border-radius: 8px; margin: 16px 0; }
            .details-box p { margin: 4px 0; }
            .button { display: inline-block; background-color: #1e3a8a; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
            .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _format_amount(amount: Decimal | float | int | None) -> str:
    if amount is None:
        return "N/A"
    return f"R{amount}"


async def send_payment_verified(
    to_email: str,
    student_name: str,
    institution_name: str,
    payment_reference: str | None,
    amount: Decimal | float | int | None,
) -> bool:
    """Tell the student their payment was verified and the application submitted."""
    safe_student_name = escape(student_name)
    safe_institution_name = escape(institution_name)
    safe_reference = escape(payment_reference or "N/A")

    dashboard_url = f"{settings.frontend_url}/dashboard"
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_BASE_STYLES}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">Payment Verified</h1>

            <p>Dear {safe_student_name},</p>

            <p>Great news! Your payment has been verified and your application has been successfully submitted to <strong>{safe_institution_name}</strong>.</p>

            <div class="details-box">
                <p><strong>Reference:</strong> {safe_reference}</p>
                <p><strong>Amount:</strong> {_format_amount(amount)}</p>
                <p><strong>Status:</strong> Verified</p>
            </div>

            <p><strong>What happens next:</strong></p>
            <ol>
                <li>Your application is now being processed by {safe_institution_name}</li>
                <li>You'll receive updates on your application status</li>
                <li>Track your progress in your Apply4Me dashboard</li>
            </ol>

            <a href="{dashboard_url}" class="button">Open Dashboard</a>

            <div class="footer">
                <p>Thank you for using Apply4Me!</p>
                <p>The Apply4Me Team</p>
            </div>
        </div>
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject=f"Payment Verified - Application Submitted to {institution_name}",
        html_content=html_content,
    )


async def send_payment_rejected(
    to_email: str,
    student_name: str,
    institution_name: str,
    payment_reference: str | None,
    amount: Decimal | float | int | None,
    admin_notes: str | None = None,
) -> bool:
    """Tell the student their payment could not be verified."""
    safe_student_name = escape(student_name)
    safe_institution_name = escape(institution_name)
    safe_reference = escape(payment_reference or "N/A")

    notes_block = ""
    if admin_notes:
        notes_block = f"""
            <div class="details-box">
                <p><strong>Admin Notes:</strong></p>
                <p>{escape(admin_notes)}</p>
            </div>
        """

    dashboard_url = f"{settings.frontend_url}/dashboard"
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_BASE_STYLES}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">Payment Verification Failed</h1>

            <p>Dear {safe_student_name},</p>

            <p>We've reviewed your payment for the application to <strong>{safe_institution_name}</strong>, but unfortunately we couldn't verify it.</p>

            <div class="details-box">
                <p><strong>Reference:</strong> {safe_reference}</p>
                <p><strong>Amount:</strong> {_format_amount(amount)}</p>
                <p><strong>Status:</strong> Verification Failed</p>
            </div>
            {notes_block}
            <p><strong>Next steps:</strong></p>
            <ol>
                <li>Please check your payment details and try again</li>
                <li>Contact us if you believe this is an error</li>
                <li>You can retry payment in your dashboard</li>
            </ol>

            <a href="{dashboard_url}" class="button">Retry Payment</a>

            <div class="footer">
                <p>Need help? Reply to this email or contact our support team.</p>
                <p>The Apply4Me Team</p>
            </div>
        </div>
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject="Payment Verification Failed - Action Required",
        html_content=html_content,
    )


async def send_notification_email(
    to_email: str,
    recipient_name: str,
    title: str,
    message: str,
) -> bool:
    """Email copy of an admin broadcast notification."""
    safe_recipient_name = escape(recipient_name)
    safe_title = escape(title)
    safe_message = escape(message).replace("\n", "<br>")

    notifications_url = f"{settings.frontend_url}/notifications"
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_BASE_STYLES}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{safe_title}</h1>

            <p>Hello {safe_recipient_name},</p>

            <p>{safe_message}</p>

            <a href="{notifications_url}" class="button">View in Apply4Me</a>

            <div class="footer">
                <p>You are receiving this because you have an Apply4Me account.</p>
                <p>The Apply4Me Team</p>
            </div>
        </div>
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject=title,
        html_content=html_content,
    )
