"""Application settings read from environment variables."""

import os
from typing import Optional


class Settings:
    """Environment-backed settings.

    Values are read when an instance is created so tests can patch the
    environment before constructing providers.
    """

    def __init__(self, env: Optional[dict] = None):
        env = os.environ if env is None else env

        self.supabase_url = env.get("SUPABASE_URL", "").strip()
        self.supabase_key = (
            env.get("SUPABASE_ANON_KEY") or env.get("SUPABASE_SERVICE_ROLE_KEY", "")
        ).strip()
        self.storage_bucket = env.get("SUPABASE_STORAGE_BUCKET", "equipments").strip()

        # Phone normalization policy
        self.default_country_code = env.get("DEFAULT_COUNTRY_CODE", "+91").strip()
        self.local_number_length = int(env.get("LOCAL_NUMBER_LENGTH") or 10)

        # Verification timers (seconds)
        self.resend_cooldown_seconds = int(env.get("OTP_RESEND_COOLDOWN_SECONDS") or 60)
        self.error_display_seconds = float(env.get("ERROR_DISPLAY_SECONDS") or 5)
        self.notification_seconds = float(env.get("NOTIFICATION_SECONDS") or 5)

        # Media limits
        self.max_image_files = int(env.get("MAX_IMAGE_FILES") or 5)
        self.max_document_files = int(env.get("MAX_DOCUMENT_FILES") or 5)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings loaded from the process environment."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
