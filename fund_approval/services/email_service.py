"""
Email Service
Outbox sink for notifications and the SMTP sender used by the outbox drainer
"""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, Protocol, List

from sqlalchemy.orm import Session

from fund_approval.config.settings import settings
from fund_approval.models.email_outbox import EmailOutbox
from fund_approval.utils.helpers import utc_now, truncate_string
from fund_approval.utils.logger import setup_logger

logger = setup_logger()


class EmailSender(Protocol):
    def send(self, to_email: str, subject: str, html_body: str, cc: Optional[str] = None) -> None:
        ...


class SmtpEmailSender:
    """Email transport over SMTP"""

    def __init__(
        self,
        smtp_server: str = settings.SMTP_SERVER,
        smtp_port: int = settings.SMTP_PORT,
        smtp_username: str = settings.SMTP_USERNAME,
        smtp_password: str = settings.SMTP_PASSWORD,
        from_email: str = settings.FROM_EMAIL,
        from_name: str = settings.FROM_NAME
    ):
        """Initialize email sender with SMTP configuration"""
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_username
        self.from_name = from_name

        # Check if email is configured
        self.is_configured = bool(self.smtp_username and self.smtp_password)

        if not self.is_configured:
            logger.warning("Email transport not configured. Set SMTP credentials in .env file.")

    def send(self, to_email: str, subject: str, html_body: str, cc: Optional[str] = None) -> None:
        """
        Send one email via SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_body: HTML email body
            cc: Optional comma-separated CC list

        Raises:
            RuntimeError: If SMTP is not configured
            smtplib.SMTPException, OSError: On transport failure
        """
        if not self.is_configured:
            raise RuntimeError("SMTP not configured")

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email
        if cc:
            msg['Cc'] = cc

        msg.attach(MIMEText(html_body, 'html'))

        with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg)

        logger.info(f"Email sent to {to_email}: {subject}")


class EmailOutboxService:
    """
    Durable email queue

    ``enqueue`` is the fire-and-forget sink used by notifications; it only
    adds a row to the caller's unit of work. ``drain_batch`` is used by the
    background drainer, never by the request path.
    """

    def __init__(
        self,
        batch_size: int = settings.EMAIL_OUTBOX_BATCH_SIZE,
        max_attempts: int = settings.EMAIL_OUTBOX_MAX_ATTEMPTS
    ):
        self.batch_size = batch_size
        self.max_attempts = max_attempts

    def enqueue(
        self,
        db: Session,
        to_address: Optional[str],
        subject: str,
        html_body: str,
        cc: Optional[str] = None
    ) -> Optional[EmailOutbox]:
        """
        Append a message to the outbox

        Args:
            db: Database session (the caller commits)
            to_address: Recipient; blank addresses are skipped
            subject: Subject line
            html_body: HTML body
            cc: Optional CC list

        Returns:
            EmailOutbox row, or None when skipped
        """
        if not to_address or not to_address.strip():
            logger.warning(f"Skipping email '{subject}': no recipient address")
            return None

        row = EmailOutbox(
            to_address=to_address.strip(),
            subject=subject,
            body_html=html_body,
            cc=cc
        )
        db.add(row)
        return row

    def pending_batch(self, db: Session) -> List[EmailOutbox]:
        return db.query(EmailOutbox).filter(
            EmailOutbox.sent_at.is_(None),
            EmailOutbox.attempts < self.max_attempts
        ).order_by(EmailOutbox.id).limit(self.batch_size).all()

    def drain_batch(self, db: Session, sender: EmailSender) -> int:
        """
        Send one batch of unsent messages

        Args:
            db: Database session
            sender: Email transport

        Returns:
            int: Number of messages sent
        """
        sent = 0
        for item in self.pending_batch(db):
            try:
                sender.send(item.to_address, item.subject, item.body_html, item.cc)
                item.sent_at = utc_now()
                item.last_error = None
                sent += 1
            except Exception as e:
                item.attempts += 1
                item.last_error = truncate_string(str(e), 1000)
                logger.warning(f"Email outbox send failed for {item.id}: {e}")
        db.commit()
        return sent


# Create singleton instance
email_outbox_service = EmailOutboxService()
