from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Depends, Header

from storefront.api.delivery.adapters.cache_adapter import CacheAdapter
from storefront.api.delivery.adapters.http_delivery_backend_adapter import HttpDeliveryBackendAdapter
from storefront.api.delivery.adapters.kakao_geocoding_adapter import KakaoGeocodingAdapter
from storefront.api.delivery.adapters.pending_order_adapter import SqlPendingOrderAdapter
from storefront.api.delivery.contracts.delivery_backend_contract import IDeliveryBackend
from storefront.api.delivery.contracts.geocoding_contract import IGeocodingService
from storefront.api.delivery.contracts.pending_order_contract import IPendingOrderStore
from storefront.api.delivery.services.checkout_service import CheckoutService
from storefront.api.delivery.services.checkout_session import CheckoutSession, CheckoutSessionRegistry
from storefront.api.delivery.services.clock_service import ClockService
from storefront.api.delivery.services.geocoding_service import GeocodingService
from storefront.api.delivery.services.payment_request_builder import PaymentRequestBuilder
from storefront.config import settings
from storefront.database.db_connection import SessionLocal


@lru_cache(maxsize=1)
def get_http_client() -> httpx.AsyncClient:
    """Backend HTTP client shared by the process (closed on shutdown)."""
    return httpx.AsyncClient(
        base_url=settings.BACKEND_BASE_URL,
        timeout=settings.BACKEND_TIMEOUT_SECONDS,
        headers={"Accept": "application/json"},
    )


async def close_http_client():
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
        get_http_client.cache_clear()


def get_delivery_backend(authorization: Optional[str] = Header(None)) -> IDeliveryBackend:
    """Backend adapter forwarding the visitor's Authorization header."""
    return HttpDeliveryBackendAdapter(get_http_client(), authorization)


@lru_cache(maxsize=1)
def _get_geocoding_service_instance() -> IGeocodingService:
    """Singleton geocoding service (the coordinate cache is shared)."""
    return GeocodingService(provider=KakaoGeocodingAdapter(), cache=CacheAdapter())


def get_geocoding_service() -> IGeocodingService:
    return _get_geocoding_service_instance()


@lru_cache(maxsize=1)
def _get_pending_order_store_instance() -> IPendingOrderStore:
    return SqlPendingOrderAdapter(SessionLocal)


def get_pending_order_store() -> IPendingOrderStore:
    return _get_pending_order_store_instance()


def new_checkout_session(session_id: str) -> CheckoutSession:
    return CheckoutSession(
        session_id=session_id,
        clock=ClockService(timezone=settings.DELIVERY_TIMEZONE),
        payment=PaymentRequestBuilder(),
        scheduling_supported=settings.DELIVERY_SCHEDULING_ENABLED,
        block_out_of_range=settings.DELIVERY_BLOCK_OUT_OF_RANGE,
    )


@lru_cache(maxsize=1)
def _get_session_registry_instance() -> CheckoutSessionRegistry:
    return CheckoutSessionRegistry(factory=new_checkout_session)


def get_session_registry() -> CheckoutSessionRegistry:
    return _get_session_registry_instance()


def get_checkout_service(
    backend: IDeliveryBackend = Depends(get_delivery_backend),
    geocoding: IGeocodingService = Depends(get_geocoding_service),
    pending_orders: IPendingOrderStore = Depends(get_pending_order_store),
    registry: CheckoutSessionRegistry = Depends(get_session_registry),
) -> CheckoutService:
    return CheckoutService(
        registry=registry,
        backend=backend,
        geocoding=geocoding,
        pending_orders=pending_orders,
        fee_mode=settings.DELIVERY_FEE_ESTIMATE_MODE,
    )


def get_checkout_session(
    x_session_id: Optional[str] = Header(None, alias="X-Session-Id"),
    registry: CheckoutSessionRegistry = Depends(get_session_registry),
) -> CheckoutSession:
    return registry.get(x_session_id)
