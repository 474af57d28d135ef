"""Equipment registration wizard: verify the owner's phone, collect the listing, submit it."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from src.models.listing import ListingDraft, ListingKind, MediaFile
from src.models.verification import VerificationStatus, VerifiedIdentity
from src.services.normalization import (
    PhoneNormalizationPolicy,
    is_valid_email,
    is_valid_phone_number,
    normalize_phone_number,
    parse_number,
)
from src.services.providers import Providers
from src.services.submission import SubmissionPipeline
from src.services.verification import VerificationSession
from src.utils.errors import (
    SessionExpiredError,
    ShramicError,
    StepValidationError,
    SubmissionError,
)
from src.utils.logging import get_structured_logger, mask_phone_number
from src.utils.settings import Settings, get_settings

logger = get_structured_logger(__name__)


class WizardStep(str, Enum):
    """Registration steps in order."""
    PHONE = "phone"
    OTP = "otp"
    EQUIPMENT_DETAILS = "equipment_details"
    SELLER_PROFILE = "seller_profile"
    REVIEW = "review"
    COMPLETE = "complete"


DETAIL_STEPS = (WizardStep.EQUIPMENT_DETAILS, WizardStep.SELLER_PROFILE, WizardStep.REVIEW)

REQUIRED_FIELDS: dict[WizardStep, tuple[str, ...]] = {
    WizardStep.EQUIPMENT_DETAILS: (
        "manufacturer",
        "model",
        "year",
        "category",
        "location_city",
        "location_state",
        "location_zip",
        "description",
    ),
    WizardStep.SELLER_PROFILE: ("seller_name", "seller_email"),
}

# Price field that becomes required for each kind of listing
PRICE_FIELDS = {
    ListingKind.SALE: "asking_price",
    ListingKind.RENT: "rental_price_per_day",
}

NUMERIC_FIELDS = {
    "year": True,
    "operating_hours": True,
    "asking_price": False,
    "rental_price_per_day": False,
}


class Notification(BaseModel):
    """Transient user-facing message."""
    message: str
    level: str = "error"
    expires_at: datetime


class RegistrationWizard:
    """
    Step-by-step owner onboarding.

    Provider failures are caught here and turned into auto-dismissing
    notifications; missing fields are reported on ``field_errors`` and
    block the step without a notification.
    """

    def __init__(
        self,
        providers: Providers,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings = settings or get_settings()
        self._clock = clock
        self.policy = PhoneNormalizationPolicy.from_settings(self.settings)
        self.session = VerificationSession(
            providers.auth,
            resend_cooldown_seconds=self.settings.resend_cooldown_seconds,
            error_display_seconds=self.settings.error_display_seconds,
        )
        self.pipeline = SubmissionPipeline(providers.documents, providers.blobs, clock=clock)

        self.step = WizardStep.PHONE
        self.draft = ListingDraft()
        self.field_errors: dict[str, str] = {}
        self.busy_message: Optional[str] = None
        self.listing_id: Optional[str] = None
        self._notification: Optional[Notification] = None

    async def __aenter__(self) -> "RegistrationWizard":
        await self.session.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.session.close()
        return False

    @property
    def identity(self) -> Optional[VerifiedIdentity]:
        return self.session.identity

    @property
    def notification(self) -> Optional[Notification]:
        """Current notification, or None once it has expired."""
        if self._notification and self._notification.expires_at <= self._clock():
            self._notification = None
        return self._notification

    # Phone verification

    async def send_code(self, raw_phone: str) -> bool:
        """Normalize the number and send a verification code."""
        self.field_errors = {}
        canonical = normalize_phone_number(raw_phone, self.policy)
        if not is_valid_phone_number(canonical):
            self.field_errors = {"phone_number": "Enter a valid phone number"}
            return False

        if self.session.status not in (VerificationStatus.IDLE, VerificationStatus.FAILED):
            self.session.reset()

        self.busy_message = "Sending OTP..."
        try:
            await self.session.request_code(canonical)
        except ShramicError as e:
            self._notify(str(e))
            return False
        finally:
            self.busy_message = None

        self.step = WizardStep.OTP
        self._notify(f"Verification code sent to {canonical}", level="info")
        return True

    async def verify_code(self, code: str) -> bool:
        """Confirm the code; moves on to the equipment details."""
        self.field_errors = {}
        code = (code or "").strip()
        if not code.isdigit():
            self.field_errors = {"otp": "Enter the code sent to your phone"}
            return False

        self.busy_message = "Verifying..."
        try:
            identity = await self.session.confirm_code(code)
        except SessionExpiredError as e:
            self.step = WizardStep.PHONE
            self._notify(str(e))
            return False
        except ShramicError as e:
            self._notify(str(e))
            return False
        finally:
            self.busy_message = None

        self.step = WizardStep.EQUIPMENT_DETAILS
        logger.info(
            "Owner verified, collecting listing details",
            phone=mask_phone_number(identity.phone_number),
            owner_uid=identity.subject_id
        )
        return True

    async def resend_code(self) -> bool:
        """Resend the code once the cooldown has elapsed."""
        self.busy_message = "Sending OTP..."
        try:
            handle = await self.session.resend_code()
        except SessionExpiredError as e:
            self.step = WizardStep.PHONE
            self._notify(str(e))
            return False
        except ShramicError as e:
            self._notify(str(e))
            return False
        finally:
            self.busy_message = None

        if handle is None:
            return False
        self._notify("A new verification code has been sent", level="info")
        return True

    def change_number(self) -> None:
        """Abandon the current challenge and return to phone entry."""
        self.session.reset()
        self.field_errors = {}
        self.step = WizardStep.PHONE

    # Draft editing

    def update_field(self, name: str, value: Any) -> None:
        """Set one form field on the draft."""
        if name not in ListingDraft.model_fields or name in ("image_files", "document_files", "video_file", "schema_version"):
            raise KeyError(f"Unknown listing field: {name}")

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        try:
            setattr(self.draft, name, value)
        except ValidationError as e:
            self.field_errors[name] = e.errors()[0]["msg"]
            return
        self.field_errors.pop(name, None)

    def attach_images(self, files: list[MediaFile]) -> None:
        self.draft.image_files = self._limit(files, self.settings.max_image_files, "images")

    def attach_documents(self, files: list[MediaFile]) -> None:
        self.draft.document_files = self._limit(files, self.settings.max_document_files, "documents")

    def attach_video(self, file: Optional[MediaFile]) -> None:
        self.draft.video_file = file

    def validate_step(self, step: WizardStep) -> None:
        """Raise StepValidationError if the step's required fields are not valid."""
        errors: dict[str, str] = {}
        fields = self.draft.form_fields()

        required = list(REQUIRED_FIELDS.get(step, ()))
        if step == WizardStep.EQUIPMENT_DETAILS:
            required.append(PRICE_FIELDS[self.draft.listing_kind])

        for name in required:
            if not str(fields.get(name) or "").strip():
                errors[name] = "This field is required"

        for name, integer in NUMERIC_FIELDS.items():
            if step != WizardStep.EQUIPMENT_DETAILS or name in errors:
                continue
            value = str(fields.get(name) or "").strip()
            if value and parse_number(value, integer=integer) is None:
                errors[name] = "Enter a number"

        if step == WizardStep.SELLER_PROFILE and "seller_email" not in errors:
            if not is_valid_email(fields["seller_email"]):
                errors["seller_email"] = "Enter a valid email address"

        if errors:
            raise StepValidationError(step.value, errors)

    def advance(self) -> bool:
        """Validate the current detail step and move to the next one."""
        if self.step not in (WizardStep.EQUIPMENT_DETAILS, WizardStep.SELLER_PROFILE):
            return False

        try:
            self.validate_step(self.step)
        except StepValidationError as e:
            self.field_errors = e.field_errors
            return False

        self.field_errors = {}
        index = DETAIL_STEPS.index(self.step)
        self.step = DETAIL_STEPS[index + 1]
        return True

    def back(self) -> None:
        """Return to the previous detail step."""
        if self.step in DETAIL_STEPS and self.step != WizardStep.EQUIPMENT_DETAILS:
            self.step = DETAIL_STEPS[DETAIL_STEPS.index(self.step) - 1]
            self.field_errors = {}

    def review(self) -> dict:
        """Summary shown on the review step."""
        summary = self.draft.form_fields()
        summary["images"] = [f.filename for f in self.draft.image_files]
        summary["documents"] = [f.filename for f in self.draft.document_files]
        summary["video"] = self.draft.video_file.filename if self.draft.video_file else None
        return summary

    # Submission

    async def submit(self) -> Optional[str]:
        """Upload media and persist the listing; returns the listing ID."""
        if self.step != WizardStep.REVIEW:
            return None

        identity = self.identity
        if identity is None:
            self._notify("User not verified. Cannot submit.")
            return None

        for step in (WizardStep.EQUIPMENT_DETAILS, WizardStep.SELLER_PROFILE):
            try:
                self.validate_step(step)
            except StepValidationError as e:
                self.step = step
                self.field_errors = e.field_errors
                return None

        self.busy_message = "Submitting..."
        try:
            listing_id = await self.pipeline.submit(
                self.draft, identity, on_progress=self._set_busy
            )
        except SubmissionError as e:
            self._notify(str(e))
            return None
        finally:
            self.busy_message = None

        self.listing_id = listing_id
        self.draft = ListingDraft()
        self.step = WizardStep.COMPLETE
        await self.session.close()
        self._notify("Equipment submitted for review", level="success")
        return listing_id

    def _set_busy(self, message: str) -> None:
        self.busy_message = message

    def _notify(self, message: str, level: str = "error") -> None:
        self._notification = Notification(
            message=message,
            level=level,
            expires_at=self._clock() + timedelta(seconds=self.settings.notification_seconds),
        )

    def _limit(self, files: list[MediaFile], limit: int, kind: str) -> list[MediaFile]:
        if len(files) > limit:
            logger.info(
                "Attachment list truncated",
                kind=kind,
                selected=len(files),
                limit=limit
            )
        return list(files[:limit])
