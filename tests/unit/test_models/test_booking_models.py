"""Tests for booking and dashboard models."""

import pytest
from pydantic import ValidationError
from src.models.booking import Booking, DashboardSummary, OwnerProfile
from src.models.verification import VerificationSnapshot, VerificationStatus, VerifiedIdentity


@pytest.mark.unit
def test_booking_keeps_extra_columns():
    booking = Booking(booking_id="b1", total_amount=250, status="confirmed", renter_phone="+911234567890")

    assert booking.total_amount == 250.0
    assert booking.model_dump()["renter_phone"] == "+911234567890"


@pytest.mark.unit
def test_booking_requires_id():
    with pytest.raises(ValidationError):
        Booking(status="pending")


@pytest.mark.unit
def test_owner_profile_default_company():
    assert OwnerProfile(name="Ravi").company == "Individual Owner"


@pytest.mark.unit
def test_dashboard_summary_defaults_to_zero():
    summary = DashboardSummary()

    data = summary.model_dump(mode="json")
    assert data["owner"] is None
    assert data["equipment_stats"] == {"total": 0, "available": 0, "rented": 0, "maintenance": 0}
    assert data["earnings"]["lifetime"] == 0


@pytest.mark.unit
def test_verification_snapshot_cooldown_not_negative():
    with pytest.raises(ValidationError):
        VerificationSnapshot(resend_cooldown_seconds=-1)

    assert VerificationSnapshot().status == VerificationStatus.IDLE


@pytest.mark.unit
def test_verified_identity_token_optional():
    identity = VerifiedIdentity(phone_number="+919876543210", subject_id="uid-1")
    assert identity.access_token is None
