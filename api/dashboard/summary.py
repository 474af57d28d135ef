"""Owner dashboard summary endpoint."""

import json
import asyncio
import logging
from typing import Optional

from src.services.owner_dashboard import OwnerDashboardService
from src.services.supabase_client import build_supabase_providers
from src.utils.errors import ShramicError
from src.utils.logging import correlation_context
from src.utils.logging_config import LoggingConfig
from src.utils.settings import get_settings

LoggingConfig.setup_logging()
logger = logging.getLogger(__name__)


def _response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str)
    }


def _bearer_token(headers: dict) -> Optional[str]:
    for name, value in (headers or {}).items():
        if name.lower() == "authorization" and value:
            scheme, _, token = value.partition(" ")
            if scheme.lower() == "bearer" and token.strip():
                return token.strip()
    return None


async def _load(access_token: str, providers) -> Optional[dict]:
    identity = await providers.auth.get_identity(access_token)
    if identity is None:
        return None
    summary = await OwnerDashboardService(providers).load_summary(identity)
    return summary.model_dump(mode="json")


def handler(request, providers=None):
    """
    Return the signed-in owner's dashboard summary.

    Expects ``Authorization: Bearer <access token>`` issued by the phone
    sign-in flow.
    """
    with correlation_context():
        if request.get("method", "GET").upper() != "GET":
            return _response(405, {"error": "method not allowed"})

        access_token = _bearer_token(request.get("headers", {}))
        if not access_token:
            return _response(401, {"error": "missing bearer token"})

        try:
            providers = providers or build_supabase_providers(get_settings())
            summary = asyncio.run(_load(access_token, providers))
        except ShramicError as e:
            logger.error(f"Error loading dashboard summary: {e}", exc_info=True)
            return _response(500, {"error": str(e)})

        if summary is None:
            return _response(401, {"error": "invalid or expired token"})

        return _response(200, {"ok": True, "summary": summary})
