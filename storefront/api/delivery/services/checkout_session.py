"""
Per-visitor checkout state.

A session lives in memory for as long as the visitor keeps the checkout open.
Only the pending order code survives a restart (see the pending order store).
"""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, List, Optional

from storefront.api.delivery.schemas.schema_delivery import (
    DEFAULT_DELIVERY_CONFIG,
    DeliveryConfig,
    DeliveryInfo,
    DeliveryType,
    FeeEstimate,
    ReservationCandidate,
    ScheduledSlot,
)
from storefront.api.delivery.services.clock_service import ClockService
from storefront.api.delivery.services.eligibility import EligibilityState
from storefront.api.delivery.services.payment_request_builder import PaymentRequestBuilder
from storefront.api.delivery.services.time_window_policy import Now, TimeWindowPolicy
from storefront.core.exceptions import SessionNotFoundError
from storefront.utils.logger import logger


@dataclass
class PaymentFallback:
    """
    Fallback offered after a mobile deep link. It becomes visible once the
    delay has passed and the visitor has not reported leaving the page.
    """
    fallback_url: str
    armed_at: float
    delay_seconds: float = 0.0
    left_page: bool = False

    def visible(self, now: float) -> bool:
        return not self.left_page and now >= self.armed_at + self.delay_seconds


@dataclass
class CheckoutSession:
    session_id: str
    clock: ClockService
    payment: PaymentRequestBuilder
    scheduling_supported: bool = True
    block_out_of_range: bool = True

    config: DeliveryConfig = DEFAULT_DELIVERY_CONFIG
    config_loaded: bool = False
    today: str = ""
    candidates: List[ReservationCandidate] = field(default_factory=list)
    load_error: Optional[str] = None
    bootstrapped: bool = False

    selected_codes: List[str] = field(default_factory=list)
    info: DeliveryInfo = field(default_factory=DeliveryInfo)

    estimate: Optional[FeeEstimate] = None
    estimate_error: Optional[str] = None
    is_geocoding: bool = False
    geocoding_generation: int = 0

    delivery_type: DeliveryType = DeliveryType.IMMEDIATE
    slot: Optional[ScheduledSlot] = None

    is_submitting: bool = False
    payment_fallback: Optional[PaymentFallback] = None
    last_seen: float = field(default_factory=time.monotonic)

    # ---------------- derived ----------------

    @property
    def policy(self) -> TimeWindowPolicy:
        return TimeWindowPolicy(self.config, scheduling_supported=self.scheduling_supported)

    def candidate(self, display_code: str) -> Optional[ReservationCandidate]:
        return next((c for c in self.candidates if c.display_code == display_code), None)

    @property
    def selected_candidates(self) -> List[ReservationCandidate]:
        return [c for c in self.candidates if c.display_code in self.selected_codes]

    @property
    def selected_amount(self) -> float:
        return sum(c.total_amount for c in self.selected_candidates)

    def eligibility_state(self, now: Now) -> EligibilityState:
        policy = self.policy
        slot_available = self.slot is None or policy.is_slot_available(self.slot, now)
        return EligibilityState(
            delivery_enabled=self.config.enabled,
            selected_count=len(self.selected_candidates),
            selected_amount=self.selected_amount,
            min_amount=self.config.min_amount,
            phone=self.info.phone,
            postal_code=self.info.postal_code,
            address1=self.info.address1,
            estimate=self.estimate,
            estimate_error=self.estimate_error,
            max_distance_km=self.config.max_distance_km,
            inside_window=policy.inside_window(now),
            window_label=policy.window_label(),
            delivery_type=self.delivery_type,
            slot=self.slot,
            slot_available=slot_available,
            is_geocoding=self.is_geocoding,
            is_submitting=self.is_submitting,
            block_out_of_range=self.block_out_of_range,
        )

    # ---------------- geocoding generations ----------------

    def begin_geocoding(self) -> int:
        """Starts a new estimate; any older one still in flight becomes stale."""
        self.geocoding_generation += 1
        self.is_geocoding = True
        self.estimate = None
        self.estimate_error = None
        return self.geocoding_generation

    def finish_geocoding(
        self,
        generation: int,
        estimate: Optional[FeeEstimate] = None,
        error: Optional[str] = None,
    ) -> bool:
        """
        Applies the outcome of estimate `generation`.
        Returns False, leaving the state untouched, when a newer one started meanwhile.
        """
        if generation != self.geocoding_generation:
            logger.info(
                f"[CheckoutSession] Discarding stale estimate {generation} "
                f"(current {self.geocoding_generation})"
            )
            return False
        self.estimate = estimate
        self.estimate_error = error
        self.is_geocoding = False
        if estimate is not None:
            self.info = self.info.model_copy(
                update={
                    "latitude": estimate.coordinates.latitude,
                    "longitude": estimate.coordinates.longitude,
                }
            )
        return True

    def invalidate_estimate(self):
        """Address cleared: drop the estimate and ignore whatever is in flight."""
        self.geocoding_generation += 1
        self.is_geocoding = False
        self.estimate = None
        self.estimate_error = None

    # ---------------- payment fallback ----------------

    def arm_fallback(self, fallback_url: str, delay_seconds: float, now: float):
        self.payment_fallback = PaymentFallback(
            fallback_url=fallback_url,
            armed_at=now,
            delay_seconds=delay_seconds,
        )

    def visible_fallback_url(self, now: float) -> Optional[str]:
        if self.payment_fallback and self.payment_fallback.visible(now):
            return self.payment_fallback.fallback_url
        return None


class CheckoutSessionRegistry:
    """In-memory sessions keyed by id. Idle sessions are dropped on the next create."""

    def __init__(
        self,
        factory: Callable[[str], CheckoutSession],
        max_idle_seconds: float = 3 * 60 * 60,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self._sessions: Dict[str, CheckoutSession] = {}
        self._lock = Lock()
        self._max_idle = max_idle_seconds
        self._monotonic = monotonic

    def _purge_idle(self):
        limit = self._monotonic() - self._max_idle
        stale = [sid for sid, s in self._sessions.items() if s.last_seen < limit]
        for sid in stale:
            del self._sessions[sid]
        if stale:
            logger.info(f"[CheckoutSessionRegistry] Dropped {len(stale)} idle session(s)")

    def create(self, session_id: Optional[str] = None) -> CheckoutSession:
        """
        New session. Reusing the id of a live session replaces it, which is
        how a page reload starts over while keeping its pending order code.
        """
        session_id = session_id or uuid.uuid4().hex
        session = self._factory(session_id)
        session.last_seen = self._monotonic()
        with self._lock:
            self._purge_idle()
            self._sessions[session_id] = session
        return session

    def get(self, session_id: Optional[str]) -> CheckoutSession:
        with self._lock:
            session = self._sessions.get(session_id) if session_id else None
            if session is None:
                raise SessionNotFoundError()
            session.last_seen = self._monotonic()
            return session

    def drop(self, session_id: str):
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
