"""Owner dashboard data loading."""

import asyncio
from datetime import date, datetime
from typing import Optional, Union

from pydantic import ValidationError

from src.models.booking import Booking, DashboardSummary, OwnerProfile
from src.models.listing import EquipmentStatus
from src.models.verification import VerifiedIdentity
from src.services.dashboard import (
    compute_booking_stats,
    compute_earnings,
    compute_equipment_stats,
)
from src.services.providers import Providers
from src.utils.logging import get_structured_logger, log_timing, mask_phone_number

logger = get_structured_logger(__name__)

EQUIPMENT_COLLECTION = "equipments"
BOOKINGS_COLLECTION = "bookings"


def owner_profile_from_equipment(equipment: list[dict]) -> Optional[OwnerProfile]:
    """Owner details are taken from the first listing the owner registered."""
    if not equipment:
        return None
    first = equipment[0]
    return OwnerProfile(
        name=first.get("seller_name") or first.get("owner_name"),
        email=first.get("seller_email") or first.get("email"),
        company=first.get("company_name") or "Individual Owner",
    )


def _validate_bookings(rows) -> list[Booking]:
    """Parse booking rows, skipping ones without the required columns."""
    bookings = []
    for row in rows:
        try:
            bookings.append(Booking.model_validate(row))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed booking row",
                equipment_id=row.get("equipment_id"),
                error=str(e)
            )
    return bookings


class OwnerDashboardService:
    """Reads an owner's equipment and bookings and summarizes them."""

    def __init__(self, providers: Providers):
        self._providers = providers

    async def load_summary(
        self,
        identity: VerifiedIdentity,
        reference_date: Optional[Union[date, datetime]] = None,
    ) -> DashboardSummary:
        documents = self._providers.documents

        with log_timing(
            "load_owner_dashboard",
            logger=logger,
            phone=mask_phone_number(identity.phone_number)
        ):
            equipment = await documents.query(
                EQUIPMENT_COLLECTION, "owner_phone_number", identity.phone_number
            )

            # One bookings query per listing; results are order independent
            results = await asyncio.gather(*(
                documents.query(BOOKINGS_COLLECTION, "equipment_id", item.get("listing_id") or item.get("id"))
                for item in equipment
            ))
            bookings = _validate_bookings(row for rows in results for row in rows)

        logger.info(
            "Owner dashboard loaded",
            owner_uid=identity.subject_id,
            equipment_count=len(equipment),
            booking_count=len(bookings)
        )

        return DashboardSummary(
            owner=owner_profile_from_equipment(equipment),
            equipment=equipment,
            bookings=bookings,
            equipment_stats=compute_equipment_stats(equipment),
            booking_stats=compute_booking_stats(bookings),
            earnings=compute_earnings(bookings, reference_date),
        )

    async def set_equipment_status(self, equipment_id: str, status: Union[EquipmentStatus, str]) -> None:
        """Mark a listing Available, Rented or under Maintenance."""
        status = EquipmentStatus(status)
        await self._providers.documents.update(
            EQUIPMENT_COLLECTION, equipment_id, {"current_status": status.value}
        )
        logger.info(
            "Equipment status updated",
            equipment_id=equipment_id,
            current_status=status.value
        )

    async def sign_out(self) -> None:
        await self._providers.auth.sign_out()
