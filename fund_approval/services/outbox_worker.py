"""
Email Outbox Worker
Background loop that drains the email outbox on a fixed interval
"""

import asyncio
from typing import Callable, Optional

from sqlalchemy.orm import Session

from fund_approval.config.database import SessionLocal
from fund_approval.config.settings import settings
from fund_approval.services.email_service import (
    EmailOutboxService,
    EmailSender,
    SmtpEmailSender,
    email_outbox_service,
)
from fund_approval.utils.logger import setup_logger

logger = setup_logger()


def drain_once(
    outbox: EmailOutboxService,
    sender: EmailSender,
    session_factory: Callable[[], Session] = SessionLocal
) -> int:
    """Drain one batch in its own session"""
    db = session_factory()
    try:
        return outbox.drain_batch(db, sender)
    finally:
        db.close()


async def run_outbox_worker(
    stop_event: asyncio.Event,
    outbox: EmailOutboxService = email_outbox_service,
    sender: Optional[EmailSender] = None,
    poll_seconds: float = settings.EMAIL_OUTBOX_POLL_SECONDS,
    session_factory: Callable[[], Session] = SessionLocal
):
    """
    Drain the outbox until ``stop_event`` is set

    Args:
        stop_event: Set to stop the loop
        outbox: Outbox service
        sender: Email transport (SMTP by default)
        poll_seconds: Delay between batches
        session_factory: Session factory for each batch
    """
    sender = sender or SmtpEmailSender()
    logger.info(f"Email outbox worker started (every {poll_seconds}s)")

    while not stop_event.is_set():
        try:
            sent = await asyncio.to_thread(drain_once, outbox, sender, session_factory)
            if sent:
                logger.info(f"Email outbox worker sent {sent} message(s)")
        except Exception as e:
            logger.error(f"Email outbox worker batch failed: {str(e)}")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=poll_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info("Email outbox worker stopped")
