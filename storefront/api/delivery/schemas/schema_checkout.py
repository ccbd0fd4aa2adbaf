# storefront/api/delivery/schemas/schema_checkout.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.api.delivery.schemas.schema_delivery import (
    DeliveryConfig,
    DeliveryInfo,
    DeliveryType,
    FeeEstimate,
    PostcodeCandidate,
    ReservationItem,
)


# ---------------- requests ----------------

class AddressUpdateRequest(BaseModel):
    """Fields left out keep their current value."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    phone: Optional[str] = None
    postal_code: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None


class DeliveryTypeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    delivery_type: DeliveryType


class SlotRequest(BaseModel):
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)


# ---------------- responses ----------------

class SessionOut(BaseModel):
    session_id: str


class CandidateOut(BaseModel):
    display_code: str
    items: List[ReservationItem]
    total_amount: float
    delivery_available: bool
    selected: bool


class SlotOut(BaseModel):
    hour: int
    minute: int
    label: str


class WindowOut(BaseModel):
    label: str
    before_start: bool
    after_deadline: bool
    immediate_orderable: bool
    scheduling_open: bool
    scheduled_cutoff: str


class FeeSummaryOut(BaseModel):
    items_amount: float
    delivery_fee: Optional[int] = None
    total_amount: Optional[float] = None
    distance_km: Optional[float] = None
    fee_rule: str
    range_notice: str
    risk_notice: str


class PostcodeSearchOut(BaseModel):
    query: str
    total: int
    results: List[PostcodeCandidate]


class CheckoutStateOut(BaseModel):
    session_id: str
    today: str
    server_time: str
    delivery_enabled: bool
    config: DeliveryConfig
    load_error: Optional[str] = None

    candidates: List[CandidateOut]
    selected_codes: List[str]
    selected_amount: float

    info: DeliveryInfo
    estimate: Optional[FeeEstimate] = None
    estimate_error: Optional[str] = None
    is_geocoding: bool
    fee_summary: FeeSummaryOut

    window: WindowOut
    delivery_type: DeliveryType
    slot: Optional[SlotOut] = None
    available_slots: List[SlotOut]

    blockers: List[str]
    can_submit: bool
    is_submitting: bool
    payment_fallback_url: Optional[str] = None
