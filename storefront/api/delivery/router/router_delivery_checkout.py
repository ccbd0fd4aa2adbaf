from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Header, Query, status

from storefront.api.delivery.router.dependencies import (
    get_checkout_service,
    get_checkout_session,
)
from storefront.api.delivery.schemas.schema_checkout import (
    AddressUpdateRequest,
    CheckoutStateOut,
    DeliveryTypeRequest,
    PostcodeSearchOut,
    SlotRequest,
)
from storefront.api.delivery.schemas.schema_delivery import PostcodeCandidate
from storefront.api.delivery.schemas.schema_payment import SubmitResponse
from storefront.api.delivery.services.checkout_service import CheckoutService
from storefront.api.delivery.services.checkout_session import CheckoutSession
from storefront.utils.logger import logger


router = APIRouter(
    prefix="/api/delivery/checkout",
    tags=["Delivery checkout"]
)


@router.post("/session", response_model=CheckoutStateOut, status_code=status.HTTP_201_CREATED)
async def open_session(
    background_tasks: BackgroundTasks,
    x_session_id: Optional[str] = Header(None, alias="X-Session-Id"),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Opens (or reopens) the delivery checkout.

    Send the previous X-Session-Id on reload: an unpaid order left behind by
    that session is cancelled in the background.
    """
    session, stale_order_code = await service.bootstrap(x_session_id)
    if stale_order_code:
        logger.info(f"[DeliveryCheckout] Cancelling stale order {stale_order_code}")
        background_tasks.add_task(service.cancel_stale_order, stale_order_code)
    return service.state(session)


@router.get("/state", response_model=CheckoutStateOut)
def get_state(
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    return service.state(session)


@router.put("/address", response_model=CheckoutStateOut)
async def update_address(
    payload: AddressUpdateRequest = Body(...),
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Updates contact and address. A new base address is geocoded and re-estimated."""
    await service.update_address(session, payload)
    return service.state(session)


@router.get("/postcode", response_model=PostcodeSearchOut)
async def search_postcode(
    query: str = Query(..., min_length=1, description="Road name, lot address or building"),
    max_results: int = Query(10, ge=1, le=30),
    service: CheckoutService = Depends(get_checkout_service),
):
    results = await service.search_postcode(query, max_results=max_results)
    return PostcodeSearchOut(query=query, total=len(results), results=results)


@router.post("/postcode", response_model=CheckoutStateOut)
async def apply_postcode(
    candidate: PostcodeCandidate = Body(...),
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    await service.apply_postcode(session, candidate)
    return service.state(session)


@router.post("/selection/{display_code}", response_model=CheckoutStateOut)
def toggle_selection(
    display_code: str,
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    service.toggle_selection(session, display_code)
    return service.state(session)


@router.put("/delivery-type", response_model=CheckoutStateOut)
def set_delivery_type(
    payload: DeliveryTypeRequest = Body(...),
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    service.set_delivery_type(session, payload.delivery_type)
    return service.state(session)


@router.put("/slot", response_model=CheckoutStateOut)
def choose_slot(
    payload: SlotRequest = Body(...),
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    service.choose_slot(session, payload.hour, payload.minute)
    return service.state(session)


@router.post("/submit", response_model=SubmitResponse)
async def submit(
    user_agent: Optional[str] = Header(None),
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Starts the payment. The response says where to send the visitor;
    on mobile with a fallback, poll /state for `payment_fallback_url`.
    """
    return await service.submit(session, user_agent=user_agent)


@router.post("/payment/left", response_model=CheckoutStateOut)
def payment_left(
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    service.payment_left(session)
    return service.state(session)


@router.post("/payment/cancel", response_model=CheckoutStateOut)
def payment_cancelled(
    background_tasks: BackgroundTasks,
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    order_code = service.payment_cancelled(session)
    if order_code:
        background_tasks.add_task(service.cancel_stale_order, order_code)
    return service.state(session)


@router.post("/payment/approve", response_model=CheckoutStateOut)
def payment_approved(
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Return from the payment provider's approve page: the pending order is paid, not cancelled."""
    service.payment_approved(session)
    return service.state(session)


@router.post("/payment/fail", response_model=CheckoutStateOut)
def payment_failed(
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    service.payment_failed(session)
    return service.state(session)
