"""Equipment listing models."""

from enum import Enum
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field


LISTING_SCHEMA_VERSION = 1

# Draft fields stored as numbers on the listing record
INTEGER_FIELDS = ("year", "operating_hours")
DECIMAL_FIELDS = ("asking_price", "rental_price_per_day")


class ListingKind(str, Enum):
    """Whether the equipment is offered for sale or for rent."""
    SALE = "sale"
    RENT = "rent"


class EquipmentCondition(str, Enum):
    """Condition options offered by the registration form."""
    NEW = "New"
    USED = "Used"
    WELL_MAINTAINED = "Well-Maintained"
    REFURBISHED = "Refurbished"


class EquipmentStatus(str, Enum):
    """Operational status shown on the owner dashboard."""
    AVAILABLE = "Available"
    RENTED = "Rented"
    MAINTENANCE = "Maintenance"


class MediaFile(BaseModel):
    """A file selected for upload."""
    filename: str = Field(..., min_length=1, description="Original file name")
    content: bytes = Field(..., description="File contents")
    content_type: str = Field(default="application/octet-stream", description="MIME type")


class ListingDraft(BaseModel):
    """Form state collected by the registration wizard.

    Field values are kept as entered (strings); numeric fields are parsed
    only when the record is composed.
    """
    schema_version: Literal[1] = LISTING_SCHEMA_VERSION
    listing_kind: ListingKind = ListingKind.SALE

    # Equipment details
    manufacturer: str = ""
    model: str = ""
    year: str = ""
    category: str = ""
    operating_hours: str = ""
    serial_number: str = ""
    condition: EquipmentCondition = EquipmentCondition.USED
    location_city: str = ""
    location_state: str = ""
    location_zip: str = ""
    asking_price: str = ""
    rental_price_per_day: str = ""
    description: str = ""

    # Seller profile
    seller_name: str = ""
    seller_email: str = ""
    company_name: str = ""

    # Attached media
    image_files: list[MediaFile] = Field(default_factory=list)
    document_files: list[MediaFile] = Field(default_factory=list)
    video_file: Optional[MediaFile] = None

    model_config = {"validate_assignment": True, "protected_namespaces": ()}

    def form_fields(self) -> dict:
        """Return the editable form fields without attached media."""
        return self.model_dump(
            mode="json",
            exclude={"image_files", "document_files", "video_file", "schema_version"},
        )


class ListingRecord(BaseModel):
    """Listing row written to the equipments table."""
    listing_id: str = Field(..., description="Listing ID (text)")
    schema_version: int = LISTING_SCHEMA_VERSION
    listing_kind: ListingKind = ListingKind.SALE
    manufacturer: str
    model: str
    year: Optional[int] = None
    category: str
    operating_hours: Optional[int] = None
    serial_number: Optional[str] = None
    condition: EquipmentCondition = EquipmentCondition.USED
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    location_zip: Optional[str] = None
    asking_price: Optional[float] = None
    rental_price_per_day: Optional[float] = None
    description: Optional[str] = None
    seller_name: Optional[str] = None
    seller_email: Optional[str] = None
    company_name: Optional[str] = None
    image_urls: list[str] = Field(default_factory=list)
    document_urls: list[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    owner_phone_number: str = Field(..., description="Verified owner phone number")
    owner_uid: str = Field(..., description="Auth provider user ID")
    status: str = Field(default="under_review", description="Review status")
    current_status: EquipmentStatus = Field(
        default=EquipmentStatus.AVAILABLE,
        description="Operational status: Available, Rented, Maintenance"
    )
    created_at: datetime

    model_config = {"protected_namespaces": ()}
