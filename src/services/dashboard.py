"""Owner dashboard aggregation.

Pure reductions over equipment and booking rows. Rows may be dicts from the
document store or model instances; both snake_case and camelCase keys are
read so rows written by older clients still aggregate.
"""

import math
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, Union

from src.models.booking import BookingStats, EarningsSummary, EquipmentStats

UPCOMING_STATUSES = {"pending", "confirmed"}
PENDING_PAYOUT_STATUSES = {"confirmed", "ongoing"}


def _field(item: Any, *names: str) -> Any:
    for name in names:
        if isinstance(item, dict):
            value = item.get(name)
        else:
            value = getattr(item, name, None)
        if value is not None:
            return value
    return None


def _amount(booking: Any) -> float:
    value = _field(booking, "total_amount", "totalAmount", "amount")
    try:
        amount = float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
    # Non-finite amounts count as zero
    return amount if math.isfinite(amount) else 0.0


def _status(booking: Any) -> Optional[str]:
    value = _field(booking, "status")
    return str(value).lower() if value else None


def normalize_booking_date(value: Any) -> Optional[date]:
    """
    Convert a booking start date to a calendar date.

    Accepts provider timestamp objects exposing ``to_date()``/``toDate()``
    (or ``to_datetime()``), datetime/date instances, ISO-8601 strings and
    epoch values (seconds, or milliseconds when larger than 1e11).
    Returns None when the value cannot be interpreted.
    """
    if value is None or value == "":
        return None

    for accessor in ("to_date", "toDate", "to_datetime"):
        convert = getattr(value, accessor, None)
        if callable(convert):
            value = convert()
            break

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 1e11 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc).date()

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None

    return None


def compute_equipment_stats(equipment_list: Iterable[Any]) -> EquipmentStats:
    """Count equipment by status; a missing status counts as available."""
    stats = EquipmentStats()
    for item in equipment_list:
        stats.total += 1
        status = _field(item, "current_status", "currentStatus")
        status = getattr(status, "value", status)

        if not status or status == "Available":
            stats.available += 1
        elif status == "Rented":
            stats.rented += 1
        elif status == "Maintenance":
            stats.maintenance += 1
    return stats


def compute_booking_stats(booking_list: Iterable[Any]) -> BookingStats:
    """Count bookings that are upcoming, ongoing or completed."""
    stats = BookingStats()
    for booking in booking_list:
        status = _status(booking)
        if status in UPCOMING_STATUSES:
            stats.upcoming += 1
        elif status == "ongoing":
            stats.ongoing += 1
        elif status == "completed":
            stats.completed += 1
    return stats


def compute_earnings(
    booking_list: Iterable[Any],
    reference_date: Optional[Union[date, datetime]] = None,
) -> EarningsSummary:
    """
    Sum booking amounts into today / month / lifetime / pending totals.

    ``lifetime`` counts every booking. ``today`` and ``month`` count
    completed bookings starting on the reference day or in its calendar
    month. ``pending`` counts confirmed and ongoing bookings. Without a
    ``reference_date`` the server's local calendar day is used.
    """
    if reference_date is None:
        reference_date = date.today()
    if isinstance(reference_date, datetime):
        reference_date = reference_date.date()

    earnings = EarningsSummary()
    for booking in booking_list:
        amount = _amount(booking)
        status = _status(booking)
        earnings.lifetime += amount

        if status == "completed":
            booking_date = normalize_booking_date(_field(booking, "start_date", "startDate"))
            if booking_date is None:
                continue
            if booking_date == reference_date:
                earnings.today += amount
            if (booking_date.year, booking_date.month) == (reference_date.year, reference_date.month):
                earnings.month += amount
        elif status in PENDING_PAYOUT_STATUSES:
            earnings.pending += amount

    return earnings
