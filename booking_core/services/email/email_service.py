import smtplib
from html import escape
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Optional
import logging

from booking_core.config.settings import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via SMTP"""

    @staticmethod
    def _get_smtp_connection():
        """Create and return SMTP connection"""
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=30)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=30)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to connect to SMTP server: {e}")
            raise

    @staticmethod
    def send_email(
            to_email: str,
            subject: str,
            html_content: str,
            plain_text: Optional[str] = None,
            cc: Optional[List[str]] = None
    ) -> bool:
        """
        Send an email using SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML content of the email
            plain_text: Plain text version (fallback for non-HTML clients)
            cc: List of CC email addresses

        Returns:
            bool: True if the email was handed to the SMTP server.
            Transport errors propagate to the caller.
        """
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
        msg['To'] = to_email

        if cc:
            msg['Cc'] = ', '.join(cc)

        if plain_text:
            msg.attach(MIMEText(plain_text, 'plain'))
        msg.attach(MIMEText(html_content, 'html'))

        recipients = [to_email]
        if cc:
            recipients.extend(cc)

        try:
            server = EmailService._get_smtp_connection()
            try:
                server.sendmail(settings.EMAIL_FROM_ADDRESS, recipients, msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise

        logger.info(f"Email sent successfully to {to_email}")
        return True

    @staticmethod
    def send_booking_confirmation(booking, service, business) -> bool:
        """Plain confirmation to the customer who made the booking"""
        when = f"{booking.booking_date.strftime('%A, %B %d, %Y')} at {booking.booking_time}"

        # Customer and business fields are caller supplied; never emit them as markup
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="UTF-8">
        </head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="margin-top: 0;">Hi {escape(booking.customer_name)},</h2>
            <p>Your booking with <strong>{escape(business.name)}</strong> is confirmed.</p>
            <table style="font-size: 15px;">
                <tr><td style="padding-right: 12px;">Service</td><td>{escape(service.name)} ({service.duration} min)</td></tr>
                <tr><td style="padding-right: 12px;">When</td><td>{escape(when)}</td></tr>
                <tr><td style="padding-right: 12px;">Reference</td><td>{booking.id}</td></tr>
            </table>
            <p style="font-size: 13px; color: #777;">
                Need to change something? Reply to this email or call {escape(business.phone_number or '')}.
            </p>
        </body>
        </html>
        """

        plain_text = f"""
        Hi {booking.customer_name},

        Your booking with {business.name} is confirmed.

        Service: {service.name} ({service.duration} min)
        When: {when}
        Reference: {booking.id}

        Need to change something? Reply to this email or call {business.phone_number}.
        """

        return EmailService.send_email(
            to_email=booking.customer_email,
            subject=f"Booking confirmed: {service.name} on {booking.booking_date.isoformat()}",
            html_content=html_content,
            plain_text=plain_text
        )

    @staticmethod
    def send_owner_booking_notice(booking, service, business) -> bool:
        """New booking notice for the business owner"""
        bookings_url = f"{settings.FRONTEND_URL}/bookings/{booking.id}"
        customer = f"{booking.customer_name} ({booking.customer_email}, {booking.customer_phone})"
        notes_line = f"<li>Notes: {escape(booking.notes)}</li>" if booking.notes else ""

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="UTF-8">
        </head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="margin-top: 0;">New booking for {escape(business.name)}</h2>
            <ul style="font-size: 15px;">
                <li>Service: {escape(service.name)}</li>
                <li>Date: {booking.booking_date.isoformat()} {escape(booking.booking_time)}</li>
                <li>Customer: {escape(customer)}</li>
                <li>Source: {escape(booking.booking_source or '')}</li>
                {notes_line}
            </ul>
            <p><a href="{escape(bookings_url)}">Open booking</a></p>
        </body>
        </html>
        """

        plain_text = f"""
        New booking for {business.name}

        Service: {service.name}
        Date: {booking.booking_date.isoformat()} {booking.booking_time}
        Customer: {customer}
        Source: {booking.booking_source}
        Notes: {booking.notes or '-'}

        {bookings_url}
        """

        return EmailService.send_email(
            to_email=business.email,
            subject=f"New booking: {service.name} on {booking.booking_date.isoformat()} {booking.booking_time}",
            html_content=html_content,
            plain_text=plain_text
        )
