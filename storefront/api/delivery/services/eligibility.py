"""
Submit eligibility of a checkout.

Every failed condition contributes its own message so the visitor sees all
outstanding problems at once. `can_submit` is true only when none fail.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from storefront.api.delivery.schemas.schema_delivery import DeliveryType, FeeEstimate, ScheduledSlot

MSG_DELIVERY_SUSPENDED = "Delivery ordering is currently suspended."
MSG_NO_SELECTION = "Select at least one reservation to deliver."
MSG_NO_PHONE = "Enter a contact phone number."
MSG_NO_ADDRESS = "Enter the delivery address."
MSG_ESTIMATE_REQUIRED = "Address coordinates and delivery fee must be calculated."
MSG_OUT_OF_RANGE = "The address is outside the delivery range ({max_km:g} km)."
MSG_MIN_AMOUNT = "The minimum order amount is {min_amount:,}."
MSG_OUTSIDE_WINDOW = "Delivery orders are accepted between {window}."
MSG_NO_SLOT = "Choose a scheduled delivery time."
MSG_SLOT_EXPIRED = "The chosen delivery time is no longer available."
MSG_GEOCODING = "Checking the address coordinates."
MSG_SUBMITTING = "Payment is being prepared."

# Shown next to the fee summary, never blocks
RISK_NOTICE = (
    "Even within the delivery range ({max_km:g} km), deliveries that cross a river "
    "or a district boundary may be cancelled."
)


@dataclass
class EligibilityState:
    delivery_enabled: bool
    selected_count: int
    selected_amount: float
    min_amount: int
    phone: str
    postal_code: str
    address1: str
    estimate: Optional[FeeEstimate]
    estimate_error: Optional[str]
    max_distance_km: float
    inside_window: bool
    window_label: str
    delivery_type: DeliveryType = DeliveryType.IMMEDIATE
    slot: Optional[ScheduledSlot] = None
    slot_available: bool = True
    is_geocoding: bool = False
    is_submitting: bool = False
    block_out_of_range: bool = True


def blockers(state: EligibilityState) -> List[str]:
    reasons: List[str] = []

    if not state.delivery_enabled:
        reasons.append(MSG_DELIVERY_SUSPENDED)
    if state.selected_count == 0:
        reasons.append(MSG_NO_SELECTION)
    if not state.phone:
        reasons.append(MSG_NO_PHONE)
    if not state.postal_code or not state.address1:
        reasons.append(MSG_NO_ADDRESS)

    if state.estimate_error:
        reasons.append(state.estimate_error)
    if state.estimate is None:
        reasons.append(MSG_ESTIMATE_REQUIRED)
    elif state.block_out_of_range and state.estimate.distance_km > state.max_distance_km:
        reasons.append(MSG_OUT_OF_RANGE.format(max_km=state.max_distance_km))

    if state.selected_amount < state.min_amount:
        reasons.append(MSG_MIN_AMOUNT.format(min_amount=state.min_amount))
    if not state.inside_window:
        reasons.append(MSG_OUTSIDE_WINDOW.format(window=state.window_label))

    if state.delivery_type == DeliveryType.SCHEDULED:
        if state.slot is None:
            reasons.append(MSG_NO_SLOT)
        elif not state.slot_available:
            reasons.append(MSG_SLOT_EXPIRED)

    if state.is_geocoding:
        reasons.append(MSG_GEOCODING)
    if state.is_submitting:
        reasons.append(MSG_SUBMITTING)
    return reasons


def can_submit(state: EligibilityState) -> bool:
    return not blockers(state)


def risk_notice(max_distance_km: float) -> str:
    return RISK_NOTICE.format(max_km=max_distance_km)
