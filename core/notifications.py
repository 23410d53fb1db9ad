import logging
import re

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from twilio.rest import Client as TwilioClient

logger = logging.getLogger(__name__)


def send_notification(user, subject, email_message, sms_message):
    """
    Send notifications to users via email and SMS.

    Failures are logged and never raised; notifications are best effort.

    Args:
        user: User object to send notification to
        subject: Email subject
        email_message: Email message content
        sms_message: SMS message content
    """
    if user.email:
        try:
            send_mail(
                subject=subject,
                message=email_message,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[user.email],
                fail_silently=False,
            )
            logger.info(f"Email notification sent to user {user.id}")
        except Exception:
            logger.exception(f"Failed to send email to user {user.id}")

    if not user.phone_number or not settings.TWILIO_ACCOUNT_SID:
        return
    if not re.match(r'^\+\d{9,15}$', user.phone_number):
        logger.warning(f"Invalid phone number format for user {user.id}: {user.phone_number}")
        return
    try:
        twilio_client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        twilio_client.messages.create(
            body=sms_message,
            from_=settings.TWILIO_PHONE_NUMBER,
            to=user.phone_number
        )
        logger.info(f"SMS notification sent to user {user.id}")
    except Exception:
        logger.exception(f"Failed to send SMS to user {user.id}")


def notify_on_commit(users, subject, email_message, sms_message):
    """Queue the same notification for several users once the transaction commits."""
    def _send():
        for user in users:
            send_notification(user, subject, email_message, sms_message)
    transaction.on_commit(_send, robust=True)
