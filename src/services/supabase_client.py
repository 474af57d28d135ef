"""Supabase adapters for the auth, document and blob capabilities."""

from typing import Any, Callable, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions

from src.models.verification import VerifiedIdentity
from src.services.providers import Providers
from src.utils.errors import ConfigurationError, ProviderError
from src.utils.logging import get_structured_logger, log_timing, mask_phone_number
from src.utils.settings import Settings

logger = get_structured_logger(__name__)

# Primary key column per table
PRIMARY_KEYS = {
    "equipments": "listing_id",
    "bookings": "booking_id",
    "chats": "message_id",
}


def create_supabase_client(settings: Settings) -> Client:
    """Create a Supabase client from settings."""
    if not settings.supabase_url or not settings.supabase_key:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

    options = ClientOptions(
        auto_refresh_token=False,
        persist_session=False,
    )

    client = create_client(settings.supabase_url, settings.supabase_key, options)
    logger.info("Supabase client initialized", url=settings.supabase_url)
    return client


def _identity_from_user(user: Any, phone_number: Optional[str] = None, session: Any = None) -> VerifiedIdentity:
    phone = phone_number or getattr(user, "phone", None) or ""
    if phone and not phone.startswith("+"):
        # Supabase stores phone numbers without the leading plus
        phone = f"+{phone}"
    return VerifiedIdentity(
        phone_number=phone,
        subject_id=str(user.id),
        access_token=getattr(session, "access_token", None) if session else None,
    )


class SupabaseChallenge:
    """SMS challenge issued by Supabase Auth for one phone number."""

    def __init__(self, client: Client, phone_number: str):
        self._client = client
        self.phone_number = phone_number

    async def confirm(self, code: str) -> VerifiedIdentity:
        try:
            with log_timing("supabase_verify_otp", logger=logger, phone=mask_phone_number(self.phone_number)):
                response = self._client.auth.verify_otp({
                    "phone": self.phone_number,
                    "token": code,
                    "type": "sms",
                })
        except Exception as e:
            raise ProviderError(f"Failed to confirm code: {e}")

        if not response or not response.user:
            raise ProviderError("Failed to confirm code: no user returned")
        return _identity_from_user(response.user, self.phone_number, response.session)


class SupabaseAuthProvider:
    """Phone OTP authentication through Supabase Auth."""

    def __init__(self, client: Client):
        self._client = client

    async def request_code(self, phone_number: str) -> SupabaseChallenge:
        try:
            with log_timing("supabase_sign_in_with_otp", logger=logger, phone=mask_phone_number(phone_number)):
                self._client.auth.sign_in_with_otp({"phone": phone_number})
        except Exception as e:
            raise ProviderError(f"Failed to send verification code: {e}")
        return SupabaseChallenge(self._client, phone_number)

    async def sign_out(self) -> None:
        try:
            self._client.auth.sign_out()
        except Exception as e:
            raise ProviderError(f"Failed to sign out: {e}")

    def on_identity_change(
        self, callback: Callable[[Optional[VerifiedIdentity]], None]
    ) -> Callable[[], None]:
        """Subscribe to sign-in/sign-out events; returns an unsubscribe callable."""
        def _listener(event: str, session: Any) -> None:
            if session is not None and getattr(session, "user", None) is not None:
                callback(_identity_from_user(session.user, session=session))
            else:
                callback(None)

        subscription = self._client.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe

    async def get_identity(self, access_token: str) -> Optional[VerifiedIdentity]:
        """Resolve an access token to the signed-in identity."""
        try:
            response = self._client.auth.get_user(access_token)
        except Exception as e:
            raise ProviderError(f"Failed to resolve user: {e}")
        if not response or not response.user:
            return None
        return _identity_from_user(response.user)


class SupabaseDocumentStore:
    """Table access through PostgREST."""

    def __init__(self, client: Client):
        self._client = client

    async def query(self, collection: str, field: str, value: Any) -> list[dict]:
        try:
            result = self._client.table(collection).select("*").eq(field, value).execute()
            return result.data if result.data else []
        except Exception as e:
            raise ProviderError(f"Failed to query {collection}: {e}")

    async def list_all(self, collection: str, order_by: str) -> list[dict]:
        try:
            result = self._client.table(collection).select("*").order(order_by).execute()
            return result.data if result.data else []
        except Exception as e:
            raise ProviderError(f"Failed to list {collection}: {e}")

    async def insert(self, collection: str, record: dict) -> str:
        key = PRIMARY_KEYS.get(collection, "id")
        try:
            result = self._client.table(collection).insert(record).execute()
        except Exception as e:
            raise ProviderError(f"Failed to insert into {collection}: {e}")

        if result.data and len(result.data) > 0:
            return str(result.data[0].get(key) or result.data[0].get("id"))
        raise ProviderError(f"Failed to insert into {collection}: no data returned")

    async def update(self, collection: str, record_id: str, changes: dict) -> None:
        key = PRIMARY_KEYS.get(collection, "id")
        try:
            result = self._client.table(collection).update(changes).eq(key, record_id).execute()
        except Exception as e:
            raise ProviderError(f"Failed to update {collection}: {e}")

        if not result.data:
            raise ProviderError(f"Failed to update {collection}: {record_id} not found")


class SupabaseBlobStore:
    """Object storage in a single Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str):
        self._client = client
        self.bucket = bucket

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        file_options = {"content-type": content_type} if content_type else None
        try:
            response = self._client.storage.from_(self.bucket).upload(
                path=path, file=data, file_options=file_options
            )
        except Exception as e:
            raise ProviderError(f"Failed to upload {path}: {e}")
        return getattr(response, "path", None) or path

    async def get_public_url(self, handle: str) -> str:
        try:
            return self._client.storage.from_(self.bucket).get_public_url(handle)
        except Exception as e:
            raise ProviderError(f"Failed to get URL for {handle}: {e}")


def build_supabase_providers(settings: Settings, client: Optional[Client] = None) -> Providers:
    """Build the capability bundle backed by one Supabase client."""
    client = client or create_supabase_client(settings)
    return Providers(
        auth=SupabaseAuthProvider(client),
        documents=SupabaseDocumentStore(client),
        blobs=SupabaseBlobStore(client, settings.storage_bucket),
    )
