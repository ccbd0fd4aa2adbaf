# storefront/api/delivery/schemas/schema_delivery.py
from enum import Enum
from typing import Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from storefront.api.delivery.models.coordinates import Coordinates
from storefront.utils.phone import normalize_phone


class DeliveryConfig(BaseModel):
    """
    Delivery rules of the store, as served by the backend.

    Accepts camelCase (backend payload) or snake_case keys. Immutable once
    loaded; a session swaps the whole object when the real config arrives.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    enabled: bool = True
    store_lat: float
    store_lng: float
    max_distance_km: float = Field(ge=0)
    fee_distance_km: float = Field(ge=0)
    min_amount: int = Field(ge=0)
    fee_near: int = Field(ge=0)
    # to_camel would produce "feePer100M"
    fee_per_100m: int = Field(ge=0, alias="feePer100m")
    start_hour: int = Field(ge=0, le=23)
    start_minute: int = Field(ge=0, le=59)
    end_hour: int = Field(ge=0, le=23)
    end_minute: int = Field(ge=0, le=59)

    @field_validator("enabled", mode="before")
    @classmethod
    def _missing_enabled_means_on(cls, v: Any):
        # Older backends do not send the flag at all
        return True if v is None else v

    @model_validator(mode="after")
    def _check_window_and_tiers(self):
        if self.start_total_minutes >= self.end_total_minutes:
            raise ValueError("delivery window start must be before its end (same day)")
        if self.fee_distance_km > self.max_distance_km:
            raise ValueError("feeDistanceKm cannot exceed maxDistanceKm")
        return self

    @property
    def start_total_minutes(self) -> int:
        return self.start_hour * 60 + self.start_minute

    @property
    def end_total_minutes(self) -> int:
        return self.end_hour * 60 + self.end_minute


DEFAULT_DELIVERY_CONFIG = DeliveryConfig(
    enabled=True,
    store_lat=37.556504,
    store_lng=126.8372613,
    max_distance_km=3,
    fee_distance_km=1.5,
    min_amount=15000,
    fee_near=2900,
    fee_per_100m=50,
    start_hour=12,
    start_minute=0,
    end_hour=19,
    end_minute=30,
)


class DeliveryInfo(BaseModel):
    """Contact and address of the visitor, saved on the backend between visits."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    phone: str = ""
    postal_code: str = ""
    address1: str = ""
    address2: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("phone", mode="before")
    @classmethod
    def _digits_only(cls, v: Any):
        return normalize_phone(v)

    @field_validator("postal_code", "address1", "address2", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any):
        return "" if v is None else str(v)

    def coordinates(self) -> Optional[Coordinates]:
        return Coordinates.from_tuple((self.latitude, self.longitude))

    @property
    def has_full_address(self) -> bool:
        return bool(self.postal_code) and bool(self.address1)


class ReservationItem(BaseModel):
    name: str = ""
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0, ge=0)

    @property
    def subtotal(self) -> float:
        return self.quantity * self.unit_price


class ReservationCandidate(BaseModel):
    """A reservation for today that may be picked for delivery."""
    model_config = ConfigDict(frozen=True)

    display_code: str
    items: List[ReservationItem] = Field(default_factory=list)
    delivery_available: bool = True

    @property
    def total_amount(self) -> float:
        return sum(item.subtotal for item in self.items)


class DistanceEstimate(BaseModel):
    """Distance/fee pair returned by the backend fee estimate."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    distance_km: float = Field(ge=0)
    delivery_fee: int = Field(ge=0)


class FeeEstimate(BaseModel):
    """Outcome of estimating one address: where it is, how far, how much."""
    coordinates: Coordinates
    distance_km: float
    delivery_fee: int
    out_of_range: bool = False


class DeliveryType(str, Enum):
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"


class ScheduledSlot(BaseModel):
    """
    Arrival deadline of a scheduled delivery. The courier window shown to
    the visitor is the hour that ends at the slot.
    """
    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)

    @classmethod
    def from_total_minutes(cls, total: int) -> "ScheduledSlot":
        return cls(hour=total // 60, minute=total % 60)

    @property
    def total_minutes(self) -> int:
        return self.hour * 60 + self.minute

    def display_range(self) -> str:
        start = self.total_minutes - 60
        return f"{start // 60}:{start % 60:02d} ~ {self.hour}:{self.minute:02d}"


class PostcodeCandidate(BaseModel):
    """One result of the postcode/address search."""
    postal_code: str = ""
    address1: str
    address2: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
