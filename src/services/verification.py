"""Phone challenge/response verification state machine."""

import asyncio
from typing import Optional

from src.models.verification import VerificationSnapshot, VerificationStatus, VerifiedIdentity
from src.services.providers import AuthProvider, ChallengeHandle
from src.utils.errors import (
    ProviderError,
    SessionExpiredError,
    VerificationStateError,
)
from src.utils.logging import get_structured_logger, mask_phone_number, mask_sensitive_data

logger = get_structured_logger(__name__)

DEFAULT_RESEND_COOLDOWN_SECONDS = 60
DEFAULT_ERROR_DISPLAY_SECONDS = 5.0

INVALID_CODE_MESSAGE = "Invalid OTP. Please check the code and try again."
SESSION_EXPIRED_MESSAGE = "Verification session expired. Please request a new OTP."


class VerificationSession:
    """
    Drives one phone number through idle -> code_sent -> verified.

    Provider failures move the session to ``failed`` (retryable) and set
    ``last_error``, which clears itself after ``error_display_seconds``.
    After a code is sent, resending is blocked for
    ``resend_cooldown_seconds``, counted down once per tick.
    A failed resend keeps the previous challenge, so a code that already
    arrived can still be confirmed. A request that completes after
    ``reset()`` or ``close()`` is discarded.

    Use as an async context manager so the countdown and error timers are
    released when the registration step is left.
    """

    def __init__(
        self,
        auth: AuthProvider,
        resend_cooldown_seconds: int = DEFAULT_RESEND_COOLDOWN_SECONDS,
        error_display_seconds: float = DEFAULT_ERROR_DISPLAY_SECONDS,
        tick_interval: float = 1.0,
    ):
        self._auth = auth
        self._cooldown_duration = resend_cooldown_seconds
        self._error_display_seconds = error_display_seconds
        self._tick_interval = tick_interval

        self.phone_number: Optional[str] = None
        self.status = VerificationStatus.IDLE
        self.resend_cooldown_seconds = 0
        self.last_error: Optional[str] = None
        self.busy_message: Optional[str] = None
        self.identity: Optional[VerifiedIdentity] = None

        self._handle: Optional[ChallengeHandle] = None
        # Bumped by reset/close so stale provider replies are ignored
        self._generation = 0
        self._cooldown_task: Optional[asyncio.Task] = None
        self._error_task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "VerificationSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    @property
    def has_active_challenge(self) -> bool:
        return self._handle is not None

    def snapshot(self) -> VerificationSnapshot:
        return VerificationSnapshot(
            phone_number=self.phone_number,
            status=self.status,
            resend_cooldown_seconds=self.resend_cooldown_seconds,
            last_error=self.last_error,
            busy_message=self.busy_message,
        )

    async def request_code(self, phone_number: str) -> ChallengeHandle:
        """Send a code to an already-normalized phone number."""
        if self.status not in (VerificationStatus.IDLE, VerificationStatus.FAILED):
            raise VerificationStateError(
                f"Cannot request a code while {self.status.value}; reset first"
            )
        return await self._dispatch(phone_number)

    async def resend_code(self, phone_number: Optional[str] = None) -> Optional[ChallengeHandle]:
        """Send a fresh code; does nothing while the cooldown is running."""
        if self.resend_cooldown_seconds > 0:
            logger.debug(
                "Resend ignored during cooldown",
                phone=mask_phone_number(self.phone_number),
                resend_cooldown_seconds=self.resend_cooldown_seconds
            )
            return None

        phone_number = phone_number or self.phone_number
        if not phone_number:
            raise SessionExpiredError(SESSION_EXPIRED_MESSAGE)
        if self.status == VerificationStatus.VERIFIED:
            raise VerificationStateError("Phone number is already verified")

        return await self._dispatch(phone_number)

    async def confirm_code(self, code: str) -> VerifiedIdentity:
        """Confirm the code for the current challenge."""
        self._ensure_idle_request()
        confirmable = (VerificationStatus.CODE_SENT, VerificationStatus.FAILED)
        if self.status not in confirmable or self._handle is None:
            logger.info(
                "Code confirmation without active challenge",
                status=self.status.value,
                phone=mask_phone_number(self.phone_number)
            )
            self.reset()
            raise SessionExpiredError(SESSION_EXPIRED_MESSAGE)

        handle = self._handle
        generation = self._generation
        self.busy_message = "Verifying..."
        try:
            identity = await handle.confirm(code.strip())
        except Exception as e:
            if generation != self._generation:
                raise SessionExpiredError(SESSION_EXPIRED_MESSAGE) from e
            logger.warning(
                "Code confirmation failed",
                phone=mask_phone_number(self.phone_number),
                error=mask_sensitive_data(str(e))
            )
            self._set_error(INVALID_CODE_MESSAGE)
            raise ProviderError(INVALID_CODE_MESSAGE) from e
        finally:
            if generation == self._generation:
                self.busy_message = None

        if generation != self._generation:
            raise SessionExpiredError(SESSION_EXPIRED_MESSAGE)

        self.status = VerificationStatus.VERIFIED
        self.identity = identity
        self._handle = None
        self._stop_cooldown()
        self._clear_error()
        logger.info(
            "Phone number verified",
            phone=mask_phone_number(self.phone_number),
            subject_id=identity.subject_id
        )
        return identity

    def reset(self) -> None:
        """Return to idle, forgetting the number, challenge and cooldown."""
        self._generation += 1
        self._stop_cooldown()
        self._clear_error()
        self.phone_number = None
        self.identity = None
        self._handle = None
        self.busy_message = None
        self.status = VerificationStatus.IDLE

    def tick(self) -> None:
        """Advance the resend countdown by one second."""
        if self.resend_cooldown_seconds > 0:
            self.resend_cooldown_seconds -= 1

    async def close(self) -> None:
        """Release timers and drop the outstanding challenge."""
        self._generation += 1
        self.busy_message = None
        for task in (self._cooldown_task, self._error_task):
            if task is not None and not task.done():
                task.cancel()
        self._cooldown_task = None
        self._error_task = None
        self._handle = None

    async def _dispatch(self, phone_number: str) -> ChallengeHandle:
        self._ensure_idle_request()
        self._clear_error()
        if phone_number != self.phone_number:
            # A challenge for another number can never be confirmed
            self._handle = None
        self.phone_number = phone_number
        self.busy_message = "Sending OTP..."
        generation = self._generation

        try:
            handle = await self._auth.request_code(phone_number)
        except Exception as e:
            if generation != self._generation:
                raise SessionExpiredError(SESSION_EXPIRED_MESSAGE) from e
            message = str(e) or "Failed to send OTP"
            self.status = VerificationStatus.FAILED
            self._stop_cooldown()
            self._set_error(message)
            logger.warning(
                "Verification code dispatch failed",
                phone=mask_phone_number(phone_number),
                error=mask_sensitive_data(message)
            )
            if isinstance(e, ProviderError):
                raise
            raise ProviderError(message) from e
        finally:
            if generation == self._generation:
                self.busy_message = None

        if generation != self._generation:
            logger.info(
                "Discarding code sent before the session was reset",
                phone=mask_phone_number(phone_number)
            )
            raise SessionExpiredError(SESSION_EXPIRED_MESSAGE)

        # The new challenge supersedes any earlier one
        self._handle = handle
        self.status = VerificationStatus.CODE_SENT
        self._start_cooldown()
        logger.info(
            "Verification code sent",
            phone=mask_phone_number(phone_number),
            resend_cooldown_seconds=self.resend_cooldown_seconds
        )
        return handle

    def _ensure_idle_request(self) -> None:
        if self.busy_message is not None:
            raise VerificationStateError(f"Request already in progress: {self.busy_message}")

    def _start_cooldown(self) -> None:
        self._stop_cooldown()
        self.resend_cooldown_seconds = self._cooldown_duration
        self._cooldown_task = asyncio.create_task(self._run_cooldown())

    def _stop_cooldown(self) -> None:
        if self._cooldown_task is not None and not self._cooldown_task.done():
            self._cooldown_task.cancel()
        self._cooldown_task = None
        self.resend_cooldown_seconds = 0

    async def _run_cooldown(self) -> None:
        while self.resend_cooldown_seconds > 0:
            await asyncio.sleep(self._tick_interval)
            self.tick()

    def _set_error(self, message: str) -> None:
        self.last_error = message
        if self._error_task is not None and not self._error_task.done():
            self._error_task.cancel()
        self._error_task = asyncio.create_task(self._expire_error(message))

    def _clear_error(self) -> None:
        if self._error_task is not None and not self._error_task.done():
            self._error_task.cancel()
        self._error_task = None
        self.last_error = None

    async def _expire_error(self, message: str) -> None:
        await asyncio.sleep(self._error_display_seconds)
        if self.last_error == message:
            self.last_error = None
