"""
Payment order ledger (payment_orders table).

`claim_confirmed` is the idempotency gate for reconciliation: a conditional
UPDATE that only succeeds while reconciled_at is NULL, so a redelivered
confirmation for the same order_id claims nothing.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, insert, update, and_
from sqlalchemy.exc import IntegrityError

from kareersakhi.core.database import get_db_session, payment_orders
from kareersakhi.core.errors import ConflictError
from kareersakhi.models.billing import PaymentOrder, PaymentStatus


def _row_to_order(row) -> PaymentOrder:
    return PaymentOrder(
        order_id=row.order_id,
        amount=row.amount,
        target_tier=row.target_tier,
        currency=row.currency,
        status=row.status,
        provider_payment_id=row.provider_payment_id,
        created_at=row.created_at,
        reconciled_at=row.reconciled_at,
    )


def insert_order(order: PaymentOrder) -> None:
    try:
        with get_db_session() as session:
            session.execute(
                insert(payment_orders).values(
                    order_id=order.order_id,
                    target_tier=order.target_tier.value,
                    amount=order.amount,
                    currency=order.currency,
                    status=order.status.value,
                    created_at=order.created_at,
                    updated_at=order.created_at,
                )
            )
            session.commit()
    except IntegrityError:
        raise ConflictError(f"Order {order.order_id} already exists")


def get_order(order_id: str) -> Optional[PaymentOrder]:
    with get_db_session() as session:
        row = session.execute(
            select(payment_orders).where(payment_orders.c.order_id == order_id)
        ).fetchone()
        return _row_to_order(row) if row else None


def set_status(order_id: str, status: PaymentStatus, now: datetime, payment_id: Optional[str] = None) -> bool:
    """Update status of a not-yet-reconciled order. Returns False if nothing changed."""
    values = {"status": status.value, "updated_at": now}
    if payment_id:
        values["provider_payment_id"] = payment_id
    with get_db_session() as session:
        result = session.execute(
            update(payment_orders)
            .where(and_(
                payment_orders.c.order_id == order_id,
                payment_orders.c.reconciled_at.is_(None),
            ))
            .values(**values)
        )
        session.commit()
        return result.rowcount == 1


def claim_confirmed(order_id: str, now: datetime, payment_id: Optional[str] = None) -> bool:
    """Atomically mark an order confirmed + reconciled. True only for the first caller."""
    with get_db_session() as session:
        result = session.execute(
            update(payment_orders)
            .where(and_(
                payment_orders.c.order_id == order_id,
                payment_orders.c.reconciled_at.is_(None),
            ))
            .values(
                status=PaymentStatus.CONFIRMED.value,
                provider_payment_id=payment_id,
                reconciled_at=now,
                updated_at=now,
            )
        )
        session.commit()
        return result.rowcount == 1


def release_claim(order_id: str, status: PaymentStatus, now: datetime) -> bool:
    """Undo claim_confirmed when the entitlement write behind it failed."""
    with get_db_session() as session:
        result = session.execute(
            update(payment_orders)
            .where(payment_orders.c.order_id == order_id)
            .values(status=status.value, reconciled_at=None, updated_at=now)
        )
        session.commit()
        return result.rowcount == 1
