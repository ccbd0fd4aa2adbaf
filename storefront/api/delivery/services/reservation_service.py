from typing import Any, Dict, Iterable, List

from storefront.api.delivery.schemas.schema_delivery import ReservationCandidate, ReservationItem
from storefront.utils.logger import logger

REORDERABLE_DELIVERY_STATUSES = {"", "CANCELED", "FAILED"}


def _delivery_status(row: Dict[str, Any]) -> str:
    delivery = row.get("delivery")
    status = delivery.get("status") if isinstance(delivery, dict) else None
    if status is None:
        status = row.get("delivery_status", row.get("deliveryStatus"))
    return str(status or "").upper()


def _delivery_available(row: Dict[str, Any]) -> bool:
    for key in ("delivery_available", "deliveryAvailable"):
        if isinstance(row.get(key), bool):
            return row[key]
    return True


def is_deliverable_today(row: Dict[str, Any], today: str) -> bool:
    """Pending, picked up for today, and not already claimed by a live delivery."""
    return (
        str(row.get("status") or "").upper() == "PENDING"
        and _delivery_status(row) in REORDERABLE_DELIVERY_STATUSES
        and str(row.get("order_date") or "") == today
    )


def to_candidate(row: Dict[str, Any]) -> ReservationCandidate:
    quantity = max(1, int(row.get("quantity") or 1))
    amount = float(row.get("amount") or 0)
    display_code = row.get("display_code") or row.get("displayCode") or row.get("id")
    return ReservationCandidate(
        display_code=str(display_code),
        items=[
            ReservationItem(
                name=str(row.get("product_name") or ""),
                quantity=quantity,
                unit_price=amount / quantity,
            )
        ],
        delivery_available=_delivery_available(row),
    )


def build_candidates(rows: Iterable[Dict[str, Any]], today: str) -> List[ReservationCandidate]:
    """
    Reservation rows -> candidates for today's delivery.
    Deliverable candidates come first; the original order is kept otherwise.
    Rows whose quantity or amount cannot be read are skipped.
    """
    candidates = []
    for row in rows:
        if not isinstance(row, dict) or not is_deliverable_today(row, today):
            continue
        try:
            candidates.append(to_candidate(row))
        except (TypeError, ValueError) as e:
            logger.warning(f"[Reservations] Skipping malformed reservation {row.get('id')}: {e}")
    return sorted(candidates, key=lambda c: not c.delivery_available)
