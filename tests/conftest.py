"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import datetime, timezone
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT", "text")

from src.models.verification import VerifiedIdentity
from src.utils.settings import Settings
from tests.utils.fakes import FakeAuthProvider, FakeBlobStore, FakeDocumentStore
from src.services.providers import Providers


@pytest.fixture
def settings():
    """Settings with default policy values and fast timers."""
    return Settings({
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_ANON_KEY": "test-key",
        "DEFAULT_COUNTRY_CODE": "+91",
        "LOCAL_NUMBER_LENGTH": "10",
        "OTP_RESEND_COOLDOWN_SECONDS": "60",
        "ERROR_DISPLAY_SECONDS": "5",
        "NOTIFICATION_SECONDS": "5",
        "MAX_IMAGE_FILES": "5",
        "MAX_DOCUMENT_FILES": "3",
    })


@pytest.fixture
def fake_auth():
    return FakeAuthProvider()


@pytest.fixture
def fake_documents():
    return FakeDocumentStore()


@pytest.fixture
def fake_blobs():
    return FakeBlobStore()


@pytest.fixture
def providers(fake_auth, fake_documents, fake_blobs):
    return Providers(auth=fake_auth, documents=fake_documents, blobs=fake_blobs)


@pytest.fixture
def verified_identity():
    return VerifiedIdentity(phone_number="+919876543210", subject_id="uid-owner-1")


@pytest.fixture
def fixed_clock():
    """Clock frozen at a known instant."""
    now = datetime(2024, 12, 9, 12, 0, 0, tzinfo=timezone.utc)
    return lambda: now


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture
def mock_vercel_request():
    """Mock Vercel serverless function request."""
    return {
        "method": "GET",
        "path": "/api/dashboard/summary",
        "headers": {
            "authorization": "Bearer test-access-token",
            "content-type": "application/json"
        },
        "body": "",
        "query": {}
    }
