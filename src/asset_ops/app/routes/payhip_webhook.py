"""Payhip sale webhook.

Payhip retries on any 5xx, so unknown products and duplicate deliveries are
acknowledged with 200 and ``status: ignored``.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.app.config import get_settings
from asset_ops.app.errors import error_response, handle_error
from asset_ops.infra.database import get_db
from asset_ops.services.transaction_service import record_sale

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


def _token_valid(received: Optional[str]) -> bool:
    expected = get_settings().payhip_secret_token
    if not received or not expected:
        return False
    return hmac.compare_digest(received, expected)


@router.post("/payhip")
async def payhip_webhook(
    request: Request,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Record a Payhip sale and rescore the asset it belongs to."""
    if not _token_valid(token):
        logger.error("Payhip webhook rejected: invalid token")
        return error_response(401, "Unauthorized")

    try:
        payload = await request.json()
    except ValueError:
        return error_response(400, "Invalid Payload: body is not JSON")
    if not isinstance(payload, dict):
        return error_response(400, "Invalid Payload: expected a JSON object")

    try:
        result = await record_sale(db, payload)
    except Exception as e:
        return handle_error(e, "Payhip webhook")

    if result.status == "ignored":
        return {"status": "ignored", "reason": result.reason}

    return {
        "status": "success",
        "asset": result.asset_slug,
        "new_rarity": result.new_rarity,
        "revenue_added": result.revenue_added,
    }
