from __future__ import annotations

import time
from typing import Callable, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from storefront.api.delivery.contracts.delivery_backend_contract import IDeliveryBackend
from storefront.api.delivery.contracts.geocoding_contract import IGeocodingService
from storefront.api.delivery.contracts.pending_order_contract import IPendingOrderStore
from storefront.api.delivery.models.coordinates import Coordinates
from storefront.api.delivery.schemas.schema_checkout import (
    AddressUpdateRequest,
    CandidateOut,
    CheckoutStateOut,
    FeeSummaryOut,
    SlotOut,
    WindowOut,
)
from storefront.api.delivery.schemas.schema_delivery import (
    DeliveryInfo,
    DeliveryType,
    PostcodeCandidate,
    ScheduledSlot,
)
from storefront.api.delivery.schemas.schema_payment import (
    FallbackOnlyRedirect,
    MobileWithFallbackRedirect,
    SubmitResponse,
)
from storefront.api.delivery.services.checkout_session import CheckoutSession, CheckoutSessionRegistry
from storefront.api.delivery.services.eligibility import blockers as eligibility_blockers, risk_notice
from storefront.api.delivery.services.fee_calculator import (
    DistanceFeeCalculator,
    FEE_ESTIMATE_FAILED_MESSAGE,
)
from storefront.api.delivery.services.reservation_service import build_candidates
from storefront.core.exceptions import (
    DeliveryError,
    FeeEstimateError,
    GeocodingError,
    SchedulingUnavailableError,
    SelectionError,
    SubmissionBlockedError,
    SubmissionInFlightError,
)
from storefront.utils.logger import logger
from storefront.utils.safe_errors import get_safe_error_message, safe_error_log

MSG_UNKNOWN_RESERVATION = "This reservation is not available for delivery today."
MSG_NOT_DELIVERABLE = "This item cannot be delivered."
MSG_SCHEDULING_NOT_OFFERED = "Scheduled delivery is not offered."
MSG_SCHEDULING_CLOSED = "Scheduled delivery is accepted until {cutoff}."
MSG_SLOT_UNAVAILABLE = "The chosen delivery time is not available."
MSG_NOT_SCHEDULED = "Switch to scheduled delivery before choosing a time."
MSG_RESERVATIONS_FAILED = "An error occurred while loading the delivery reservations."


def _slot_out(slot: ScheduledSlot) -> SlotOut:
    return SlotOut(hour=slot.hour, minute=slot.minute, label=slot.display_range())


class CheckoutService:
    """
    Delivery checkout orchestration.

    Built per request around the visitor's backend adapter; all state lives
    in the CheckoutSession objects of the registry.
    """

    def __init__(
        self,
        registry: CheckoutSessionRegistry,
        backend: IDeliveryBackend,
        geocoding: IGeocodingService,
        pending_orders: IPendingOrderStore,
        fee_mode: str = "backend",
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.registry = registry
        self.backend = backend
        self.geocoding = geocoding
        self.pending_orders = pending_orders
        self.calculator = DistanceFeeCalculator(backend, geocoding, mode=fee_mode)
        self._monotonic = monotonic

    # ---------------- bootstrap ----------------

    async def bootstrap(self, session_id: Optional[str] = None) -> Tuple[CheckoutSession, Optional[str]]:
        """
        Opens a checkout: trusted clock, delivery config, today's
        reservations and the saved address.

        Returns the session and the stale pending order code left by an
        abandoned payment, which the caller cancels in the background.
        """
        session = self.registry.create(session_id)
        stale_order_code = await run_in_threadpool(self.pending_orders.pop, session.session_id)

        await session.clock.resolve_offset(self.backend)
        session.today = session.clock.today()

        try:
            session.config = await self.backend.get_delivery_config()
            session.config_loaded = True
        except DeliveryError as e:
            safe_error_log(e, "CheckoutService - get_delivery_config")
            session.load_error = get_safe_error_message(e, "Could not load the delivery settings.")

        try:
            rows = await self.backend.get_reservations(session.today, session.today)
            session.candidates = build_candidates(rows, session.today)
        except DeliveryError as e:
            safe_error_log(e, "CheckoutService - load_reservations")
            session.load_error = session.load_error or get_safe_error_message(e, MSG_RESERVATIONS_FAILED)

        try:
            saved = await self.backend.get_delivery_info()
        except DeliveryError as e:
            safe_error_log(e, "CheckoutService - get_delivery_info")
            saved = None
        if saved is not None:
            session.info = saved
            coordinates = saved.coordinates()
            if coordinates is not None:
                await self._estimate(session, coordinates=coordinates)
            elif saved.address1:
                await self._estimate(session, address=saved.address1)

        session.bootstrapped = True
        logger.info(
            f"[CheckoutService] Session {session.session_id[:8]} ready: "
            f"{len(session.candidates)} candidate(s), offset {session.clock.offset_ms} ms"
        )
        return session, stale_order_code

    async def cancel_stale_order(self, order_code: str):
        """Best effort: the backend also expires payment-ready records on its own."""
        try:
            await self.backend.cancel_payment(order_code)
            logger.info(f"[CheckoutService] Cancelled stale order {order_code}")
        except DeliveryError as e:
            safe_error_log(e, f"CheckoutService - cancel_stale_order {order_code}")

    # ---------------- address ----------------

    async def _estimate(
        self,
        session: CheckoutSession,
        address: Optional[str] = None,
        coordinates: Optional[Coordinates] = None,
    ):
        generation = session.begin_geocoding()
        try:
            if coordinates is not None:
                estimate = await self.calculator.estimate_for_coordinates(coordinates, session.config)
            else:
                estimate = await self.calculator.estimate(address, session.config)
            session.finish_geocoding(generation, estimate=estimate)
        except (GeocodingError, FeeEstimateError) as e:
            session.finish_geocoding(generation, error=e.message)
        except DeliveryError as e:
            safe_error_log(e, "CheckoutService - estimate")
            session.finish_geocoding(generation, error=get_safe_error_message(e, FEE_ESTIMATE_FAILED_MESSAGE))
        finally:
            if generation == session.geocoding_generation:
                session.is_geocoding = False

    async def update_address(self, session: CheckoutSession, update: AddressUpdateRequest) -> CheckoutSession:
        changes = update.model_dump(exclude_none=True)
        previous_address1 = session.info.address1
        session.info = DeliveryInfo.model_validate({**session.info.model_dump(), **changes})

        if session.info.address1 != previous_address1:
            # Saved coordinates belong to the old address
            session.info = session.info.model_copy(update={"latitude": None, "longitude": None})
            if session.info.address1:
                await self._estimate(session, address=session.info.address1)
            else:
                session.invalidate_estimate()
        return session

    async def search_postcode(self, query: str, max_results: int = 10) -> List[PostcodeCandidate]:
        return await self.geocoding.search_postcode(query, max_results=max_results)

    async def apply_postcode(self, session: CheckoutSession, candidate: PostcodeCandidate) -> CheckoutSession:
        session.info = session.info.model_copy(
            update={
                "postal_code": candidate.postal_code,
                "address1": candidate.address1,
                "address2": candidate.address2,
                "latitude": None,
                "longitude": None,
            }
        )
        await self._estimate(session, address=candidate.address1)
        return session

    # ---------------- selection & time ----------------

    def toggle_selection(self, session: CheckoutSession, display_code: str) -> CheckoutSession:
        candidate = session.candidate(display_code)
        if candidate is None:
            raise SelectionError(MSG_UNKNOWN_RESERVATION, details={"display_code": display_code})
        if not candidate.delivery_available:
            raise SelectionError(MSG_NOT_DELIVERABLE, details={"display_code": display_code})

        if display_code in session.selected_codes:
            session.selected_codes.remove(display_code)
        else:
            session.selected_codes.append(display_code)
        return session

    def set_delivery_type(self, session: CheckoutSession, delivery_type: DeliveryType) -> CheckoutSession:
        if delivery_type == DeliveryType.IMMEDIATE:
            session.delivery_type = DeliveryType.IMMEDIATE
            session.slot = None
            return session

        policy = session.policy
        now = session.clock.now()
        if not policy.scheduling_supported:
            raise SchedulingUnavailableError(MSG_SCHEDULING_NOT_OFFERED)
        if not policy.scheduling_open(now):
            raise SchedulingUnavailableError(
                MSG_SCHEDULING_CLOSED.format(cutoff=policy.scheduled_cutoff_label())
            )

        session.delivery_type = DeliveryType.SCHEDULED
        available = policy.available_slots(now)
        if session.slot is None or session.slot not in available:
            session.slot = available[0]
        return session

    def choose_slot(self, session: CheckoutSession, hour: int, minute: int) -> CheckoutSession:
        if session.delivery_type != DeliveryType.SCHEDULED:
            raise SchedulingUnavailableError(MSG_NOT_SCHEDULED)
        slot = ScheduledSlot(hour=hour, minute=minute)
        if slot not in session.policy.available_slots(session.clock.now()):
            raise SchedulingUnavailableError(MSG_SLOT_UNAVAILABLE, details={"slot": slot.display_range()})
        session.slot = slot
        return session

    # ---------------- state ----------------

    def blockers(self, session: CheckoutSession) -> List[str]:
        reasons = eligibility_blockers(session.eligibility_state(session.clock.now()))
        if session.load_error:
            reasons.insert(0, session.load_error)
        return reasons

    def state(self, session: CheckoutSession) -> CheckoutStateOut:
        now = session.clock.now()
        policy = session.policy
        config = session.config
        reasons = self.blockers(session)

        selected_amount = session.selected_amount
        fee = session.estimate.delivery_fee if session.estimate else None
        fee_summary = FeeSummaryOut(
            items_amount=selected_amount,
            delivery_fee=fee,
            total_amount=selected_amount + fee if fee is not None else None,
            distance_km=round(session.estimate.distance_km, 2) if session.estimate else None,
            fee_rule=(
                f"{config.fee_near:,} up to {config.fee_distance_km:g} km, "
                f"then {config.fee_per_100m:,} per 100 m"
            ),
            range_notice=f"Delivery range: within {config.max_distance_km:g} km",
            risk_notice=risk_notice(config.max_distance_km),
        )

        return CheckoutStateOut(
            session_id=session.session_id,
            today=session.today,
            server_time=now.isoformat(),
            delivery_enabled=config.enabled,
            config=config,
            load_error=session.load_error,
            candidates=[
                CandidateOut(
                    display_code=c.display_code,
                    items=c.items,
                    total_amount=c.total_amount,
                    delivery_available=c.delivery_available,
                    selected=c.display_code in session.selected_codes,
                )
                for c in session.candidates
            ],
            selected_codes=list(session.selected_codes),
            selected_amount=selected_amount,
            info=session.info,
            estimate=session.estimate,
            estimate_error=session.estimate_error,
            is_geocoding=session.is_geocoding,
            fee_summary=fee_summary,
            window=WindowOut(
                label=policy.window_label(),
                before_start=policy.is_before_start(now),
                after_deadline=policy.is_after_deadline(now),
                immediate_orderable=policy.immediate_orderable(now),
                scheduling_open=policy.scheduling_open(now),
                scheduled_cutoff=policy.scheduled_cutoff_label(),
            ),
            delivery_type=session.delivery_type,
            slot=_slot_out(session.slot) if session.slot else None,
            available_slots=[_slot_out(s) for s in policy.available_slots(now)],
            blockers=reasons,
            can_submit=not reasons,
            is_submitting=session.is_submitting,
            payment_fallback_url=session.visible_fallback_url(self._monotonic()),
        )

    # ---------------- payment ----------------

    async def submit(self, session: CheckoutSession, user_agent: Optional[str] = None) -> SubmitResponse:
        if session.is_submitting:
            raise SubmissionInFlightError()
        reasons = self.blockers(session)
        if reasons:
            raise SubmissionBlockedError(reasons)

        session.is_submitting = True
        session.payment_fallback = None
        issued_codes: List[str] = []
        try:
            outcome = await session.payment.submit(
                self.backend,
                info=session.info,
                reservation_codes=[c.display_code for c in session.selected_candidates],
                coordinates=session.estimate.coordinates,
                now_hm=session.clock.now_hm(),
                slot=session.slot if session.delivery_type == DeliveryType.SCHEDULED else None,
                user_agent=user_agent,
                on_order_code=issued_codes.append,
            )
        finally:
            session.is_submitting = False
            # Saved even when the redirect check fails, so the order can be cancelled later
            if issued_codes:
                await run_in_threadpool(self.pending_orders.save, session.session_id, issued_codes[-1])

        plan = outcome.plan
        if isinstance(plan, MobileWithFallbackRedirect):
            session.arm_fallback(plan.fallback_url, plan.fallback_after_seconds, self._monotonic())
        elif isinstance(plan, FallbackOnlyRedirect):
            session.arm_fallback(plan.fallback_url, 0.0, self._monotonic())
        return SubmitResponse(order_code=outcome.order_code, redirect=plan)

    def payment_left(self, session: CheckoutSession) -> CheckoutSession:
        """The deep link opened the payment app: the fallback is no longer needed."""
        if session.payment_fallback is not None:
            session.payment_fallback.left_page = True
        return session

    def payment_cancelled(self, session: CheckoutSession) -> Optional[str]:
        """
        Return from the payment provider's cancel page. Clears the pending
        order code and returns it so the caller cancels it in the background.
        """
        session.payment_fallback = None
        return self.pending_orders.pop(session.session_id)

    def payment_approved(self, session: CheckoutSession) -> Optional[str]:
        """
        Return from the payment provider's approve page. The order is paid,
        so its code is dropped without cancelling it.
        """
        return self._settle(session, "approved")

    def payment_failed(self, session: CheckoutSession) -> Optional[str]:
        """Return from the provider's fail page; the backend already knows the payment failed."""
        return self._settle(session, "failed")

    def _settle(self, session: CheckoutSession, outcome: str) -> Optional[str]:
        session.payment_fallback = None
        order_code = self.pending_orders.pop(session.session_id)
        logger.info(f"[CheckoutService] Session {session.session_id[:8]} payment {outcome}: {order_code}")
        return order_code
