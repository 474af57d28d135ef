"""Capability interfaces for the external auth, document and blob services."""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from src.models.verification import VerifiedIdentity


class ChallengeHandle(Protocol):
    """An outstanding phone challenge that can be confirmed once."""

    phone_number: str

    async def confirm(self, code: str) -> VerifiedIdentity:
        ...


class AuthProvider(Protocol):
    async def request_code(self, phone_number: str) -> ChallengeHandle:
        ...

    async def sign_out(self) -> None:
        ...

    def on_identity_change(
        self, callback: Callable[[Optional[VerifiedIdentity]], None]
    ) -> Callable[[], None]:
        ...

    async def get_identity(self, access_token: str) -> Optional[VerifiedIdentity]:
        ...


class DocumentStore(Protocol):
    async def query(self, collection: str, field: str, value: Any) -> list[dict]:
        ...

    async def list_all(self, collection: str, order_by: str) -> list[dict]:
        ...

    async def insert(self, collection: str, record: dict) -> str:
        ...

    async def update(self, collection: str, record_id: str, changes: dict) -> None:
        ...


class BlobStore(Protocol):
    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        ...

    async def get_public_url(self, handle: str) -> str:
        ...


@dataclass(frozen=True)
class Providers:
    """External capabilities built once at startup and passed to services."""

    auth: AuthProvider
    documents: DocumentStore
    blobs: BlobStore
