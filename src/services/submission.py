"""Listing submission: upload media, compose the record, persist it."""

from datetime import datetime, timezone
from typing import Callable, Optional

from ulid import ULID

from src.models.listing import (
    DECIMAL_FIELDS,
    INTEGER_FIELDS,
    ListingDraft,
    ListingRecord,
    MediaFile,
)
from src.models.verification import VerifiedIdentity
from src.services.normalization import parse_number
from src.services.providers import BlobStore, DocumentStore
from src.utils.errors import PartialSubmissionError, SubmissionError
from src.utils.logging import get_structured_logger, log_timing, mask_phone_number, mask_sensitive_data

logger = get_structured_logger(__name__)

LISTINGS_COLLECTION = "equipments"
SUBMISSION_FAILED_MESSAGE = "Failed to register equipment. Please try again."

ProgressCallback = Callable[[str], None]


def generate_listing_id() -> str:
    """Generate a text-based listing ID (ULID format)."""
    return str(ULID())


def _blank_to_none(value: str) -> Optional[str]:
    value = value.strip() if isinstance(value, str) else value
    return value or None


class SubmissionPipeline:
    """
    Turn a completed draft and a verified identity into a listing row.

    Files are uploaded one at a time in draft order (images, then documents,
    then the video). Any failure aborts the submission; blobs committed
    before the failure are left in place and reported on
    ``PartialSubmissionError.uploaded_paths``. Retrying uploads every file
    again.
    """

    def __init__(
        self,
        documents: DocumentStore,
        blobs: BlobStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._documents = documents
        self._blobs = blobs
        self._clock = clock

    async def submit(
        self,
        draft: ListingDraft,
        identity: VerifiedIdentity,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Upload media and persist the listing; returns its listing ID."""
        progress = on_progress or (lambda message: None)
        submitted_at = self._clock()
        token = int(submitted_at.timestamp() * 1000)
        uploaded_paths: list[str] = []

        logger.info(
            "Listing submission started",
            owner_uid=identity.subject_id,
            phone=mask_phone_number(identity.phone_number),
            images=len(draft.image_files),
            documents=len(draft.document_files),
            has_video=draft.video_file is not None
        )

        try:
            progress("Uploading images...")
            image_urls = await self._upload_all(
                draft.image_files, identity, "images", token, uploaded_paths
            )

            progress("Uploading documents...")
            document_urls = await self._upload_all(
                draft.document_files, identity, "documents", token, uploaded_paths
            )

            video_url = None
            if draft.video_file is not None:
                progress("Uploading video...")
                video_urls = await self._upload_all(
                    [draft.video_file], identity, "video", token, uploaded_paths
                )
                video_url = video_urls[0]

            progress("Finalizing registration...")
            record = self.compose_record(
                draft, identity, image_urls, document_urls, video_url, submitted_at
            )

            with log_timing("persist_listing", logger=logger, listing_id=record.listing_id):
                listing_id = await self._documents.insert(
                    LISTINGS_COLLECTION, record.model_dump(mode="json")
                )
        except Exception as e:
            logger.error(
                "Listing submission failed",
                owner_uid=identity.subject_id,
                uploaded_paths=uploaded_paths,
                error=mask_sensitive_data(str(e))
            )
            if uploaded_paths:
                raise PartialSubmissionError(SUBMISSION_FAILED_MESSAGE, uploaded_paths) from e
            raise SubmissionError(SUBMISSION_FAILED_MESSAGE) from e

        logger.info(
            "Listing submitted for review",
            listing_id=listing_id,
            owner_uid=identity.subject_id,
            uploaded_files=len(uploaded_paths)
        )
        return listing_id

    def compose_record(
        self,
        draft: ListingDraft,
        identity: VerifiedIdentity,
        image_urls: list[str],
        document_urls: list[str],
        video_url: Optional[str],
        created_at: datetime,
    ) -> ListingRecord:
        """Merge draft fields with media URLs and owner identity."""
        fields = draft.form_fields()

        for name in INTEGER_FIELDS:
            fields[name] = parse_number(fields.get(name), integer=True)
        for name in DECIMAL_FIELDS:
            fields[name] = parse_number(fields.get(name))

        for name, value in fields.items():
            if isinstance(value, str):
                fields[name] = _blank_to_none(value)

        return ListingRecord(
            **fields,
            listing_id=generate_listing_id(),
            image_urls=image_urls,
            document_urls=document_urls,
            video_url=video_url,
            owner_phone_number=identity.phone_number,
            owner_uid=identity.subject_id,
            status="under_review",
            created_at=created_at,
        )

    async def _upload_all(
        self,
        files: list[MediaFile],
        identity: VerifiedIdentity,
        category: str,
        token: int,
        uploaded_paths: list[str],
    ) -> list[str]:
        urls = []
        for index, media in enumerate(files):
            path = f"{LISTINGS_COLLECTION}/{identity.subject_id}/{category}/{token}_{index}_{media.filename}"
            with log_timing("upload_media", logger=logger, category=category, path=path):
                handle = await self._blobs.upload(path, media.content, media.content_type)
            uploaded_paths.append(handle)
            urls.append(await self._blobs.get_public_url(handle))
        return urls
