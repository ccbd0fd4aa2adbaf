from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from storefront.api.delivery.contracts.delivery_backend_contract import IDeliveryBackend
from storefront.api.delivery.models.coordinates import Coordinates
from storefront.api.delivery.schemas.schema_delivery import DeliveryInfo, ScheduledSlot
from storefront.api.delivery.schemas.schema_payment import (
    DesktopRedirect,
    FallbackOnlyRedirect,
    MobileOnlyRedirect,
    MobileWithFallbackRedirect,
    PaymentReadyPayload,
    PaymentReadyResponse,
    RedirectPlan,
)
from storefront.config import settings
from storefront.core.exceptions import (
    BackendUnavailableError,
    BusinessRuleRejection,
    DeliveryError,
    PaymentRedirectError,
    RedirectNotAllowedError,
)
from storefront.utils.logger import logger
from storefront.utils.prometheus_metrics import record_payment_ready

MOBILE_USER_AGENT = re.compile(r"Android|iPhone|iPad|iPod", re.IGNORECASE)

MSG_URL_NOT_ALLOWED = "The payment URL is not allowed."
MSG_NO_PAYMENT_URL = "No payment URL was returned."


def is_mobile_user_agent(user_agent: Optional[str]) -> bool:
    return bool(user_agent) and MOBILE_USER_AGENT.search(user_agent) is not None


def is_allowed_payment_url(url: str, allowed_hosts: Iterable[str]) -> bool:
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return False
    return hostname is not None and hostname in set(allowed_hosts)


def resolve_redirect_plan(
    response: PaymentReadyResponse,
    mobile: bool,
    fallback_after_seconds: float = 2.0,
) -> RedirectPlan:
    """
    Picks the navigation for the visitor's platform.

    Desktop needs the desktop URL. Mobile prefers the app deep link and
    keeps the desktop URL as fallback; without a deep link the fallback is
    offered immediately.
    """
    desktop_url = response.redirect_url
    deep_link = response.mobile_redirect_url

    if not mobile:
        if not desktop_url:
            raise PaymentRedirectError(MSG_NO_PAYMENT_URL)
        return DesktopRedirect(url=desktop_url)
    if deep_link and desktop_url:
        return MobileWithFallbackRedirect(
            deep_link=deep_link,
            fallback_url=desktop_url,
            fallback_after_seconds=fallback_after_seconds,
        )
    if deep_link:
        return MobileOnlyRedirect(deep_link=deep_link)
    if desktop_url:
        return FallbackOnlyRedirect(fallback_url=desktop_url)
    raise PaymentRedirectError(MSG_NO_PAYMENT_URL)


@dataclass
class PaymentOutcome:
    order_code: Optional[str]
    plan: RedirectPlan


class PaymentRequestBuilder:
    """
    Payment initiation for one checkout session.

    `idempotency_key` is created on the first try of an attempt, reused by
    every retry of that attempt and cleared when the attempt settles, so the
    next attempt gets a fresh key.
    """

    def __init__(
        self,
        allowed_hosts: Optional[List[str]] = None,
        max_attempts: Optional[int] = None,
        fallback_seconds: Optional[float] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self.allowed_hosts = list(allowed_hosts if allowed_hosts is not None else settings.PAYMENT_ALLOWED_HOSTS)
        self.max_attempts = max(1, max_attempts or settings.PAYMENT_READY_MAX_ATTEMPTS)
        self.fallback_seconds = (
            fallback_seconds if fallback_seconds is not None else settings.PAYMENT_MOBILE_FALLBACK_SECONDS
        )
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.5, min=0.5, max=4)
        self.idempotency_key: Optional[str] = None

    def ensure_key(self) -> str:
        if self.idempotency_key is None:
            self.idempotency_key = uuid.uuid4().hex
        return self.idempotency_key

    async def _send_ready(self, backend: IDeliveryBackend, payload: PaymentReadyPayload) -> PaymentReadyResponse:
        # Only transport failures are retried; a 400 is a final answer
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(BackendUnavailableError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"[PaymentRequestBuilder] Retrying payment ready "
                        f"(try {attempt.retry_state.attempt_number}/{self.max_attempts})"
                    )
                return await backend.create_payment_ready(payload)

    def _check_allowed(self, response: PaymentReadyResponse) -> None:
        for url in (response.redirect_url, response.mobile_redirect_url):
            if url and not is_allowed_payment_url(url, self.allowed_hosts):
                logger.error(f"[PaymentRequestBuilder] Blocked payment URL host: {urlparse(url).hostname}")
                raise RedirectNotAllowedError(MSG_URL_NOT_ALLOWED)

    async def submit(
        self,
        backend: IDeliveryBackend,
        *,
        info: DeliveryInfo,
        reservation_codes: List[str],
        coordinates: Coordinates,
        now_hm: Tuple[int, int],
        slot: Optional[ScheduledSlot] = None,
        user_agent: Optional[str] = None,
        on_order_code: Optional[Callable[[str], None]] = None,
    ) -> PaymentOutcome:
        """
        Saves the delivery info, creates the payment-ready record and
        returns where the visitor should go next.

        `on_order_code` is called as soon as the backend returns an order
        code, before the redirect URLs are checked, so an order created with
        an unusable URL can still be cancelled later.
        """
        try:
            await backend.save_delivery_info(info)

            payload = PaymentReadyPayload(
                reservation_codes=reservation_codes,
                delivery_hour=now_hm[0],
                delivery_minute=now_hm[1],
                phone=info.phone,
                postal_code=info.postal_code,
                address1=info.address1,
                address2=info.address2 or "",
                latitude=coordinates.latitude,
                longitude=coordinates.longitude,
                scheduled_delivery_hour=slot.hour if slot else None,
                scheduled_delivery_minute=slot.minute if slot else None,
                idempotency_key=self.ensure_key(),
            )

            try:
                response = await self._send_ready(backend, payload)
            except BusinessRuleRejection:
                record_payment_ready("rejected")
                raise
            except BackendUnavailableError:
                record_payment_ready("unavailable")
                raise
            except DeliveryError:
                record_payment_ready("failed")
                raise

            if response.order_code and on_order_code is not None:
                on_order_code(response.order_code)

            try:
                self._check_allowed(response)
                plan = resolve_redirect_plan(
                    response,
                    mobile=is_mobile_user_agent(user_agent),
                    fallback_after_seconds=self.fallback_seconds,
                )
            except DeliveryError:
                record_payment_ready("bad_redirect")
                raise

            record_payment_ready("ok")
            logger.info(f"[PaymentRequestBuilder] Payment ready for order {response.order_code} ({plan.kind})")
            return PaymentOutcome(order_code=response.order_code, plan=plan)
        finally:
            self.idempotency_key = None
