"""Booking and dashboard summary models."""

from typing import Any, Optional
from pydantic import BaseModel, Field


class Booking(BaseModel):
    """Booking row as read from the bookings table."""
    booking_id: str = Field(..., description="Booking ID (text)")
    equipment_id: Optional[str] = Field(None, description="Equipment ID (text FK)")
    renter_name: Optional[str] = None
    total_amount: Optional[float] = Field(None, description="Booking amount")
    status: Optional[str] = Field(
        None,
        description="Status: pending, confirmed, ongoing, completed, cancelled"
    )
    start_date: Any = Field(
        None,
        description="Provider timestamp object, datetime/date, ISO string or epoch"
    )
    end_date: Any = None

    model_config = {"extra": "allow", "arbitrary_types_allowed": True}


class EquipmentStats(BaseModel):
    """Equipment counts by operational status."""
    total: int = 0
    available: int = 0
    rented: int = 0
    maintenance: int = 0


class BookingStats(BaseModel):
    """Booking counts by lifecycle stage."""
    upcoming: int = 0
    ongoing: int = 0
    completed: int = 0


class EarningsSummary(BaseModel):
    """Earnings totals for the owner dashboard."""
    today: float = 0
    month: float = 0
    lifetime: float = 0
    pending: float = 0


class OwnerProfile(BaseModel):
    """Owner details shown in the dashboard header."""
    name: Optional[str] = None
    email: Optional[str] = None
    company: str = "Individual Owner"


class DashboardSummary(BaseModel):
    """Everything the owner dashboard renders."""
    owner: Optional[OwnerProfile] = None
    equipment: list[dict] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)
    equipment_stats: EquipmentStats = Field(default_factory=EquipmentStats)
    booking_stats: BookingStats = Field(default_factory=BookingStats)
    earnings: EarningsSummary = Field(default_factory=EarningsSummary)
