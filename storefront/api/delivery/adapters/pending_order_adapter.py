from typing import Callable, Optional

from sqlalchemy.orm import Session

from storefront.api.delivery.contracts.pending_order_contract import IPendingOrderStore
from storefront.api.delivery.models.model_pending_order import PendingOrderModel
from storefront.utils.logger import logger


class SqlPendingOrderAdapter(IPendingOrderStore):
    """Pending order codes in the `delivery_pending_orders` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def save(self, session_id: str, order_code: str) -> None:
        with self._session_factory() as db:
            row = db.get(PendingOrderModel, session_id)
            if row is None:
                db.add(PendingOrderModel(session_id=session_id, order_code=order_code))
            else:
                row.order_code = order_code
            db.commit()
        logger.info(f"[PendingOrderStore] Session {session_id[:8]} pending order {order_code}")

    def get(self, session_id: str) -> Optional[str]:
        with self._session_factory() as db:
            row = db.get(PendingOrderModel, session_id)
            return row.order_code if row else None

    def pop(self, session_id: str) -> Optional[str]:
        with self._session_factory() as db:
            row = db.get(PendingOrderModel, session_id)
            if row is None:
                return None
            order_code = row.order_code
            db.delete(row)
            db.commit()
            return order_code
