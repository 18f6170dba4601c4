"""Transaction ingestion - Payhip sales and manual entries.

Both paths append a transaction row and then reconcile the owning asset over
its full history. Transactions are never updated or deleted.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.domain.enums import TransactionSource
from asset_ops.domain.errors import StorageError, ValidationError
from asset_ops.domain.models import Asset, Transaction
from asset_ops.services.reconciliation_service import load_asset, reconcile_asset

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


@dataclass
class SaleResult:
    status: str  # "success" or "ignored"
    reason: Optional[str] = None
    asset_slug: Optional[str] = None
    new_rarity: Optional[str] = None
    revenue_added: Optional[float] = None


def _positive_amount(raw, label: str) -> float:
    """Parse a sale amount. NaN, infinities, zero and negatives are rejected."""
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} is not numeric: {raw!r}")
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError(f"{label} must be a positive finite number: {raw!r}")
    return amount


async def _find_asset_by_product_link(db: AsyncSession, product_link: str) -> Optional[Asset]:
    try:
        result = await db.execute(
            select(Asset)
            .where(Asset.payhip_link.ilike(f"%{product_link}%"))
            .order_by(Asset.created_at)
            .limit(1)
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"DB Search Error: {exc}") from exc
    return result.scalar_one_or_none()


async def _transaction_exists(db: AsyncSession, external_id: str) -> bool:
    try:
        result = await db.execute(
            select(Transaction.id).where(Transaction.payhip_transaction_id == external_id)
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Duplicate check failed: {exc}") from exc
    return result.scalar_one_or_none() is not None


async def _insert_transaction(db: AsyncSession, tx: Transaction) -> bool:
    """Insert *tx*. Returns False when the idempotency key already exists."""
    external_id = tx.payhip_transaction_id
    db.add(tx)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if external_id and await _transaction_exists(db, external_id):
            return False
        raise StorageError(f"Transaction Insert Failed: {exc}") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageError(f"Transaction Insert Failed: {exc}") from exc
    return True


async def record_sale(db: AsyncSession, payload: dict) -> SaleResult:
    """Ingest a Payhip sale notification.

    Unknown products and duplicate deliveries are acknowledged as ignored so
    Payhip stops retrying them.

    Raises:
        ValidationError: if id, price or product_link is missing, or the
            price is not a positive finite number.
    """
    sale_id = payload.get("id")
    price = payload.get("price")
    product_link = payload.get("product_link")
    if not sale_id or not price or not product_link:
        raise ValidationError("Invalid Payload: Missing required fields (id, price, product_link)")

    amount = _positive_amount(price, "Invalid Payload: price")

    asset = await _find_asset_by_product_link(db, str(product_link))
    if asset is None:
        logger.warning(
            "[ORPHAN_SALE] No asset found for Payhip link %s. Transaction ID: %s",
            product_link,
            sale_id,
        )
        return SaleResult(status="ignored", reason="Asset not linked")

    if await _transaction_exists(db, str(sale_id)):
        return SaleResult(status="ignored", reason="Duplicate transaction")

    inserted = await _insert_transaction(
        db,
        Transaction(
            payhip_transaction_id=str(sale_id),
            asset_id=asset.id,
            amount=amount,
            currency=payload.get("currency") or DEFAULT_CURRENCY,
            source=TransactionSource.PAYHIP.value,
            occurred_at=datetime.now(timezone.utc),
        ),
    )
    if not inserted:
        return SaleResult(status="ignored", reason="Duplicate transaction")

    logger.info("[SALE CONFIRMED] Asset: %s | Amount: %s", asset.sku_slug, amount)

    outcome = await reconcile_asset(db, asset.id)
    return SaleResult(
        status="success",
        asset_slug=asset.sku_slug,
        new_rarity=outcome.score.current_tier.value,
        revenue_added=amount,
    )


async def log_manual_transaction(
    db: AsyncSession,
    asset_id: str,
    amount: float,
    occurred_at: Optional[datetime] = None,
    currency: Optional[str] = None,
):
    """Record an off-platform sale and rescore the asset.

    Returns:
        (Transaction, ReconcileOutcome)

    Raises:
        ValidationError: if amount is not a positive finite number.
        NotFoundError: if the asset does not exist.
    """
    amount = _positive_amount(amount, "Amount")

    await load_asset(db, asset_id)

    now = datetime.now(timezone.utc)
    manual_key = f"MANUAL-{int(now.timestamp() * 1000)}-{asset_id[:8]}-{uuid.uuid4().hex[:8]}"
    tx = Transaction(
        payhip_transaction_id=manual_key,
        asset_id=asset_id,
        amount=amount,
        currency=currency or DEFAULT_CURRENCY,
        source=TransactionSource.MANUAL.value,
        occurred_at=occurred_at or now,
    )
    if not await _insert_transaction(db, tx):
        raise StorageError("Manual transaction collided with an existing idempotency key")

    logger.info("Manual transaction %s: asset=%s amount=%s", tx.id, asset_id, amount)

    outcome = await reconcile_asset(db, asset_id)
    return tx, outcome
