"""
Helper Utilities
Common helper functions
"""

from typing import Optional
from datetime import datetime, timezone
from decimal import Decimal


def utc_now() -> datetime:
    """
    Current UTC time as a naive datetime (the storage convention)

    Returns:
        datetime: Naive UTC timestamp
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """
    Convert an aware datetime to naive UTC, leave naive values untouched

    Args:
        value: Datetime to normalize

    Returns:
        datetime: Naive UTC datetime
    """
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def format_currency(amount, currency: str = "INR") -> str:
    """
    Format amount as currency

    Args:
        amount: Amount to format
        currency: Currency code

    Returns:
        str: Formatted currency string
    """
    if amount is None:
        amount = Decimal("0")
    if currency == "INR":
        return f"₹{amount:,.2f}"
    return f"{currency} {amount:,.2f}"


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO date or datetime string

    Args:
        value: Raw string

    Returns:
        datetime or None when blank or unparseable
    """
    if not value or not str(value).strip():
        return None
    try:
        return to_naive_utc(datetime.fromisoformat(str(value).strip()))
    except ValueError:
        return None


def truncate_string(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate string to max length

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        str: Truncated string
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
