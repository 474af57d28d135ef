"""Tests for the Supabase capability adapters."""

import pytest
from unittest.mock import MagicMock, patch

from src.services.supabase_client import (
    SupabaseAuthProvider,
    SupabaseBlobStore,
    SupabaseDocumentStore,
    build_supabase_providers,
    create_supabase_client,
)
from src.utils.errors import ConfigurationError, ProviderError
from src.utils.settings import Settings


def _user(user_id="uid-1", phone="919876543210"):
    user = MagicMock()
    user.id = user_id
    user.phone = phone
    return user


@pytest.fixture
def mock_client():
    client = MagicMock()
    query = MagicMock()
    query.select.return_value = query
    query.eq.return_value = query
    query.order.return_value = query
    query.insert.return_value = query
    query.update.return_value = query
    query.execute.return_value = MagicMock(data=[])
    client.table.return_value = query
    return client


@pytest.mark.unit
def test_create_client_requires_credentials():
    with pytest.raises(ConfigurationError):
        create_supabase_client(Settings({}))


@pytest.mark.unit
def test_service_role_key_is_fallback():
    settings = Settings({"SUPABASE_URL": "https://x.supabase.co", "SUPABASE_SERVICE_ROLE_KEY": "srk"})
    assert settings.supabase_key == "srk"

    with patch("src.services.supabase_client.create_client") as create:
        create_supabase_client(settings)

    assert create.call_args[0][:2] == ("https://x.supabase.co", "srk")


@pytest.mark.unit
def test_build_providers_uses_configured_bucket(mock_client):
    settings = Settings({
        "SUPABASE_URL": "https://x.supabase.co",
        "SUPABASE_ANON_KEY": "anon",
        "SUPABASE_STORAGE_BUCKET": "listing-media",
    })

    providers = build_supabase_providers(settings, client=mock_client)

    assert isinstance(providers.auth, SupabaseAuthProvider)
    assert isinstance(providers.documents, SupabaseDocumentStore)
    assert providers.blobs.bucket == "listing-media"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_request_and_confirm_code(mock_client):
    mock_client.auth.verify_otp.return_value = MagicMock(user=_user(), session=MagicMock(access_token="jwt"))
    auth = SupabaseAuthProvider(mock_client)

    challenge = await auth.request_code("+919876543210")
    identity = await challenge.confirm("123456")

    mock_client.auth.sign_in_with_otp.assert_called_once_with({"phone": "+919876543210"})
    mock_client.auth.verify_otp.assert_called_once_with({
        "phone": "+919876543210",
        "token": "123456",
        "type": "sms",
    })
    assert identity.phone_number == "+919876543210"
    assert identity.subject_id == "uid-1"
    assert identity.access_token == "jwt"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_request_code_failure_is_provider_error(mock_client):
    mock_client.auth.sign_in_with_otp.side_effect = Exception("SMS quota exceeded")
    auth = SupabaseAuthProvider(mock_client)

    with pytest.raises(ProviderError, match="SMS quota exceeded"):
        await auth.request_code("+919876543210")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_confirm_with_wrong_code_is_provider_error(mock_client):
    mock_client.auth.verify_otp.side_effect = Exception("Token has expired or is invalid")
    challenge = await SupabaseAuthProvider(mock_client).request_code("+919876543210")

    with pytest.raises(ProviderError):
        await challenge.confirm("000000")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_identity_adds_plus_to_stored_phone(mock_client):
    mock_client.auth.get_user.return_value = MagicMock(user=_user(phone="14155550100"))

    identity = await SupabaseAuthProvider(mock_client).get_identity("jwt")

    mock_client.auth.get_user.assert_called_once_with("jwt")
    assert identity.phone_number == "+14155550100"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_identity_without_user_returns_none(mock_client):
    mock_client.auth.get_user.return_value = MagicMock(user=None)

    assert await SupabaseAuthProvider(mock_client).get_identity("jwt") is None


@pytest.mark.unit
def test_identity_change_subscription(mock_client):
    seen = []
    auth = SupabaseAuthProvider(mock_client)

    unsubscribe = auth.on_identity_change(seen.append)
    listener = mock_client.auth.on_auth_state_change.call_args[0][0]
    listener("SIGNED_IN", MagicMock(user=_user(), access_token="jwt"))
    listener("SIGNED_OUT", None)

    assert seen[0].subject_id == "uid-1"
    assert seen[1] is None
    assert unsubscribe is mock_client.auth.on_auth_state_change.return_value.unsubscribe


@pytest.mark.unit
@pytest.mark.asyncio
async def test_query_filters_on_field(mock_client):
    rows = [{"listing_id": "L1"}]
    mock_client.table.return_value.execute.return_value = MagicMock(data=rows)

    result = await SupabaseDocumentStore(mock_client).query("equipments", "owner_phone_number", "+91")

    mock_client.table.assert_called_with("equipments")
    mock_client.table.return_value.eq.assert_called_with("owner_phone_number", "+91")
    assert result == rows


@pytest.mark.unit
@pytest.mark.asyncio
async def test_insert_returns_primary_key(mock_client):
    mock_client.table.return_value.execute.return_value = MagicMock(data=[{"listing_id": "01ABC"}])

    listing_id = await SupabaseDocumentStore(mock_client).insert("equipments", {"listing_id": "01ABC"})

    assert listing_id == "01ABC"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_insert_without_data_is_provider_error(mock_client):
    with pytest.raises(ProviderError, match="no data returned"):
        await SupabaseDocumentStore(mock_client).insert("equipments", {"listing_id": "01ABC"})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_matches_primary_key(mock_client):
    mock_client.table.return_value.execute.return_value = MagicMock(data=[{"listing_id": "01ABC"}])

    await SupabaseDocumentStore(mock_client).update("equipments", "01ABC", {"current_status": "Rented"})

    mock_client.table.return_value.update.assert_called_once_with({"current_status": "Rented"})
    mock_client.table.return_value.eq.assert_called_with("listing_id", "01ABC")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_missing_row_is_provider_error(mock_client):
    with pytest.raises(ProviderError, match="not found"):
        await SupabaseDocumentStore(mock_client).update("bookings", "b1", {"status": "completed"})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_blob_upload_and_public_url(mock_client):
    bucket = mock_client.storage.from_.return_value
    bucket.upload.return_value = MagicMock(path="equipments/uid/images/1_a.jpg")
    bucket.get_public_url.return_value = "https://cdn.test/equipments/uid/images/1_a.jpg"
    store = SupabaseBlobStore(mock_client, "equipments")

    handle = await store.upload("equipments/uid/images/1_a.jpg", b"data", "image/jpeg")
    url = await store.get_public_url(handle)

    mock_client.storage.from_.assert_called_with("equipments")
    bucket.upload.assert_called_once_with(
        path="equipments/uid/images/1_a.jpg",
        file=b"data",
        file_options={"content-type": "image/jpeg"},
    )
    assert url == "https://cdn.test/equipments/uid/images/1_a.jpg"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_blob_upload_failure_is_provider_error(mock_client):
    mock_client.storage.from_.return_value.upload.side_effect = Exception("bucket not found")

    with pytest.raises(ProviderError, match="bucket not found"):
        await SupabaseBlobStore(mock_client, "equipments").upload("p", b"x")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_all_orders_rows(mock_client):
    rows = [{"message_id": "m1", "text": "Hello", "timestamp": "2024-12-09T09:00:00Z"}]
    mock_client.table.return_value.execute.return_value = MagicMock(data=rows)

    result = await SupabaseDocumentStore(mock_client).list_all("chats", order_by="timestamp")

    mock_client.table.assert_called_with("chats")
    mock_client.table.return_value.order.assert_called_once_with("timestamp")
    assert result == rows


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_all_failure_is_provider_error(mock_client):
    mock_client.table.return_value.execute.side_effect = Exception("relation does not exist")

    with pytest.raises(ProviderError, match="Failed to list chats"):
        await SupabaseDocumentStore(mock_client).list_all("chats", order_by="timestamp")
