from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from storefront.database.db_connection import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingOrderModel(Base):
    """
    Order code of a payment-ready record whose payment was never confirmed.
    One row per checkout session; replaced on every successful payment-ready.
    """
    __tablename__ = "delivery_pending_orders"

    session_id = Column(String(64), primary_key=True)
    order_code = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
