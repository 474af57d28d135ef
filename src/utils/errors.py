"""Error handling utilities."""

from typing import Optional


class ShramicError(Exception):
    """Base exception for the Shramic backend."""
    pass


class ConfigurationError(ShramicError):
    """Required configuration is missing or malformed."""
    pass


class StepValidationError(ShramicError):
    """Required wizard fields are missing or malformed."""

    def __init__(self, step: str, field_errors: dict[str, str]):
        self.step = step
        self.field_errors = field_errors
        fields = ", ".join(sorted(field_errors))
        super().__init__(f"Step '{step}' has invalid fields: {fields}")


class ProviderError(ShramicError):
    """Auth, document store or blob store call failed (transient)."""
    pass


class SessionExpiredError(ShramicError):
    """Code confirmation attempted without an active challenge."""
    pass


class SubmissionError(ShramicError):
    """Listing submission failed before anything was committed."""
    pass


class PartialSubmissionError(SubmissionError):
    """Listing submission failed after some uploads were committed."""

    def __init__(self, message: str, uploaded_paths: Optional[list[str]] = None):
        super().__init__(message)
        self.uploaded_paths = list(uploaded_paths or [])


class VerificationStateError(ShramicError):
    """Verification operation not allowed in the current state."""
    pass


class EmptyMessageError(ShramicError):
    """Chat message has no text after trimming."""
    pass
