"""Shared fakes for the delivery checkout tests."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest

from storefront.api.delivery.contracts.delivery_backend_contract import IDeliveryBackend
from storefront.api.delivery.contracts.geocoding_contract import IGeocodingService
from storefront.api.delivery.contracts.pending_order_contract import IPendingOrderStore
from storefront.api.delivery.models.coordinates import Coordinates
from storefront.api.delivery.schemas.schema_delivery import (
    DEFAULT_DELIVERY_CONFIG,
    DeliveryConfig,
    DeliveryInfo,
    DistanceEstimate,
    PostcodeCandidate,
)
from storefront.api.delivery.schemas.schema_payment import PaymentReadyPayload, PaymentReadyResponse
from storefront.api.delivery.services.checkout_session import CheckoutSession, CheckoutSessionRegistry
from storefront.api.delivery.services.clock_service import ClockService
from storefront.api.delivery.services.payment_request_builder import PaymentRequestBuilder
from storefront.core.exceptions import GeocodingError

from tenacity import wait_none

KST = ZoneInfo("Asia/Seoul")
TODAY = "2026-10-17"
STORE = Coordinates(latitude=37.556504, longitude=126.8372613)

DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/124.0 Safari/537.36"
MOBILE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148"

PC_URL = "https://online-pay.kakao.com/mockup/v1/abc/info"
MOBILE_URL = "https://online-payment.kakaopay.com/mockup/v1/abc/aInfo"


def kst_epoch(hour: int, minute: int, day: str = TODAY) -> float:
    y, m, d = (int(p) for p in day.split("-"))
    return datetime(y, m, d, hour, minute, tzinfo=KST).timestamp()


class FixedClock:
    """Local clock the tests can move."""

    def __init__(self, epoch: float):
        self.epoch = epoch

    def __call__(self) -> float:
        return self.epoch

    def set(self, hour: int, minute: int):
        self.epoch = kst_epoch(hour, minute)


def reservation_row(code: str, amount: int, quantity: int = 1, **extra) -> Dict[str, Any]:
    row = {
        "id": len(code),
        "display_code": code,
        "status": "PENDING",
        "order_date": TODAY,
        "product_name": f"Product {code}",
        "quantity": quantity,
        "amount": amount,
    }
    row.update(extra)
    return row


class FakeBackend(IDeliveryBackend):
    def __init__(self):
        self.server_time_ms: Optional[int] = None
        self.server_time_error: Optional[Exception] = None
        self.config: DeliveryConfig = DEFAULT_DELIVERY_CONFIG
        self.config_error: Optional[Exception] = None
        self.info: Optional[DeliveryInfo] = None
        self.estimate: Optional[DistanceEstimate] = DistanceEstimate(distance_km=1.2, delivery_fee=2900)
        self.estimate_error: Optional[Exception] = None
        self.rows: List[Dict[str, Any]] = []
        self.ready_results: List[Any] = []
        self.calls: List[str] = []
        self.ready_payloads: List[PaymentReadyPayload] = []
        self.saved_infos: List[DeliveryInfo] = []
        self.cancelled: List[str] = []

    async def get_server_time_ms(self) -> int:
        self.calls.append("server_time")
        if self.server_time_error:
            raise self.server_time_error
        return self.server_time_ms

    async def get_delivery_config(self) -> DeliveryConfig:
        self.calls.append("config")
        if self.config_error:
            raise self.config_error
        return self.config

    async def get_delivery_info(self) -> Optional[DeliveryInfo]:
        self.calls.append("get_info")
        return self.info

    async def save_delivery_info(self, info: DeliveryInfo) -> DeliveryInfo:
        self.calls.append("save_info")
        self.saved_infos.append(info)
        return info

    async def get_fee_estimate(self, latitude: float, longitude: float) -> Optional[DistanceEstimate]:
        self.calls.append("fee_estimate")
        if self.estimate_error:
            raise self.estimate_error
        return self.estimate

    async def get_reservations(self, from_date: str, to_date: str) -> List[Dict[str, Any]]:
        self.calls.append("reservations")
        return self.rows

    async def create_payment_ready(self, payload: PaymentReadyPayload) -> PaymentReadyResponse:
        self.calls.append("payment_ready")
        self.ready_payloads.append(payload)
        result = self.ready_results.pop(0) if self.ready_results else PaymentReadyResponse(
            redirect_url=PC_URL, mobile_redirect_url=MOBILE_URL, order_code="ORD-1"
        )
        if isinstance(result, Exception):
            raise result
        return result

    async def cancel_payment(self, order_code: str) -> None:
        self.calls.append("cancel")
        self.cancelled.append(order_code)


class FakeGeocoding(IGeocodingService):
    def __init__(self, known: Optional[Dict[str, Coordinates]] = None):
        self.known = dict(known or {})
        self.resolved: List[str] = []

    async def resolve(self, address: str) -> Coordinates:
        self.resolved.append(address)
        if address not in self.known:
            raise GeocodingError("Could not find the coordinates of this address.")
        return self.known[address]

    async def search_postcode(self, query: str, max_results: int = 10) -> List[PostcodeCandidate]:
        return [
            PostcodeCandidate(
                postal_code="07552",
                address1=address,
                address2="",
                latitude=coords.latitude,
                longitude=coords.longitude,
            )
            for address, coords in self.known.items()
            if query in address
        ][:max_results]

    def clear_cache(self, address: Optional[str] = None):
        pass


class InMemoryPendingOrders(IPendingOrderStore):
    def __init__(self):
        self.codes: Dict[str, str] = {}

    def save(self, session_id: str, order_code: str) -> None:
        self.codes[session_id] = order_code

    def get(self, session_id: str) -> Optional[str]:
        return self.codes.get(session_id)

    def pop(self, session_id: str) -> Optional[str]:
        return self.codes.pop(session_id, None)


def make_registry(clock: FixedClock) -> CheckoutSessionRegistry:
    def factory(session_id: str) -> CheckoutSession:
        return CheckoutSession(
            session_id=session_id,
            clock=ClockService(timezone="Asia/Seoul", local_clock=clock),
            payment=PaymentRequestBuilder(
                allowed_hosts=["online-pay.kakao.com", "online-payment.kakaopay.com", "mockup-pg-web.kakao.com"],
                max_attempts=3,
                fallback_seconds=2,
                retry_wait=wait_none(),
            ),
        )

    return CheckoutSessionRegistry(factory=factory)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(kst_epoch(14, 0))


@pytest.fixture
def backend(clock) -> FakeBackend:
    fake = FakeBackend()
    fake.server_time_ms = int(clock() * 1000)
    fake.rows = [
        reservation_row("A-101", 9000),
        reservation_row("A-102", 6000, quantity=2),
        reservation_row("A-103", 8000, delivery_available=False),
    ]
    return fake


@pytest.fixture
def geocoding() -> FakeGeocoding:
    return FakeGeocoding({
        "Hwagok-ro 100, Gangseo-gu, Seoul": Coordinates(latitude=37.5485, longitude=126.8452),
        "Far street 1": Coordinates(latitude=37.60, longitude=126.80),
    })


@pytest.fixture
def pending_orders() -> InMemoryPendingOrders:
    return InMemoryPendingOrders()
