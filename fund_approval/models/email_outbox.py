"""
Email Outbox Model
Durable queue of messages waiting for the outbox drainer
"""

from sqlalchemy import Column, Integer, String, DateTime, Text

from fund_approval.config.database import Base
from fund_approval.utils.helpers import utc_now


class EmailOutbox(Base):
    """Email outbox model"""
    __tablename__ = "email_outbox"

    id = Column(Integer, primary_key=True, index=True)

    to_address = Column(String(320), nullable=False)
    cc = Column(String(1000), nullable=True)
    subject = Column(String(500), nullable=False)
    body_html = Column(Text, nullable=False)

    # Delivery accounting
    created_at = Column(DateTime, default=utc_now)
    sent_at = Column(DateTime, nullable=True, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)

    def __repr__(self):
        return f"<EmailOutbox {self.id} to={self.to_address} attempts={self.attempts}>"
