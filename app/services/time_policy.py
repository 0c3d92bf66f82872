"""Time-window rules: future dates, slot windows and the notice period."""

from datetime import UTC, datetime, timedelta

from app.config import settings
from app.core.exceptions import BadRequestException, ConflictException


def to_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def validate_future(value: datetime, now: datetime) -> None:
    """
    Require a timestamp strictly after ``now``.

    Raises:
        BadRequestException: If the timestamp is not in the future
    """
    if to_utc(value) <= to_utc(now):
        raise BadRequestException("Appointment date must be in the future")


def window_end(start: datetime, duration_minutes: int | None) -> datetime:
    """End of the half-open slot ``[start, start + duration)``."""
    if duration_minutes is None:
        duration_minutes = settings.fallback_duration_minutes
    return to_utc(start) + timedelta(minutes=duration_minutes)


def notice_deadline(scheduled_at: datetime) -> datetime:
    """Last instant (exclusive) at which a notice-bound action is accepted."""
    return to_utc(scheduled_at) - timedelta(days=settings.notice_period_days)


def ensure_before_notice_deadline(scheduled_at: datetime, now: datetime, action: str) -> None:
    """
    Reject a notice-bound action once the deadline has been reached.

    The deadline instant itself is already too late.

    Args:
        scheduled_at: Current start of the appointment
        now: Current time
        action: Verb used in the error message ("rescheduled", "cancelled")

    Raises:
        ConflictException: If ``now >= scheduled_at - notice period``
    """
    if to_utc(now) >= notice_deadline(scheduled_at):
        raise ConflictException(
            f"Appointment can no longer be {action}: requests must be made at least "
            f"{settings.notice_period_days} days before the appointment"
        )
