import datetime
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union


# Seconds fraction of any length; fromisoformat on 3.10 takes only 3 or 6 digits
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def utcnow() -> datetime.datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def parse_amount(value: Union[str, int, float, Decimal]) -> Decimal:
    """
    Parse a decimal-as-string amount as reported by the custody provider.

    Args:
        value: Amount (provider sends strings such as "125.50")

    Returns:
        Decimal: Parsed amount

    Raises:
        ValueError: If the value is not a finite number
    """
    try:
        # float goes through repr to avoid binary noise ("0.1" not "0.1000000000000000055")
        amount = Decimal(repr(value) if isinstance(value, float) else str(value).strip())
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")

    return amount


def is_valid_amount(value: Optional[str]) -> bool:
    """
    Check whether a query parameter can be used as an amount bound.

    Args:
        value: Raw value, may be None

    Returns:
        bool: True if it parses as a finite decimal
    """
    if value is None:
        return False
    try:
        parse_amount(value)
        return True
    except ValueError:
        return False


def parse_timestamp(value: Union[str, datetime.datetime]) -> datetime.datetime:
    """
    Parse an ISO-8601 provider timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. A trailing "Z" is accepted, and the
    seconds fraction may have any number of digits (truncated to microseconds).

    Args:
        value: ISO string or datetime

    Returns:
        datetime.datetime: Timezone-aware datetime in UTC

    Raises:
        ValueError: If the string is not ISO-8601
    """
    if isinstance(value, datetime.datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1)
        try:
            parsed = datetime.datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


def to_epoch_ms(value: datetime.datetime) -> int:
    """Milliseconds since the epoch, as used by the provider's updated_after_ms."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return int(value.timestamp() * 1000)
