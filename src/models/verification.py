"""Phone verification models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class VerificationStatus(str, Enum):
    """Phone verification states."""
    IDLE = "idle"
    CODE_SENT = "code_sent"
    VERIFIED = "verified"
    FAILED = "failed"


class VerifiedIdentity(BaseModel):
    """Identity confirmed by the auth provider."""
    phone_number: str = Field(..., description="Canonical phone number (E.164)")
    subject_id: str = Field(..., description="Provider-assigned user ID")
    access_token: Optional[str] = Field(None, description="Session access token, if issued")


class VerificationSnapshot(BaseModel):
    """Read-only view of a verification session for display."""
    phone_number: Optional[str] = None
    status: VerificationStatus = VerificationStatus.IDLE
    resend_cooldown_seconds: int = Field(default=0, ge=0)
    last_error: Optional[str] = None
    busy_message: Optional[str] = None
