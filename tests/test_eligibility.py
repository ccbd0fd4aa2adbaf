from storefront.api.delivery.models.coordinates import Coordinates
from storefront.api.delivery.schemas.schema_delivery import DeliveryType, FeeEstimate, ScheduledSlot
from storefront.api.delivery.services.eligibility import (
    MSG_ESTIMATE_REQUIRED,
    MSG_GEOCODING,
    MSG_NO_ADDRESS,
    MSG_NO_PHONE,
    MSG_NO_SELECTION,
    MSG_NO_SLOT,
    MSG_SLOT_EXPIRED,
    MSG_SUBMITTING,
    EligibilityState,
    blockers,
    can_submit,
    risk_notice,
)

WINDOW = "12:00 ~ 19:30"


def _estimate(distance_km: float = 1.2, fee: int = 2900) -> FeeEstimate:
    return FeeEstimate(
        coordinates=Coordinates(latitude=37.55, longitude=126.84),
        distance_km=distance_km,
        delivery_fee=fee,
        out_of_range=distance_km > 3,
    )


def make_state(**overrides) -> EligibilityState:
    values = dict(
        delivery_enabled=True,
        selected_count=2,
        selected_amount=15000,
        min_amount=15000,
        phone="01012345678",
        postal_code="07552",
        address1="Hwagok-ro 100, Gangseo-gu, Seoul",
        estimate=_estimate(),
        estimate_error=None,
        max_distance_km=3,
        inside_window=True,
        window_label=WINDOW,
    )
    values.update(overrides)
    return EligibilityState(**values)


def test_ready_state_can_submit():
    state = make_state()
    assert blockers(state) == []
    assert can_submit(state) is True


def test_every_violation_is_reported():
    state = make_state(selected_count=0, selected_amount=0, inside_window=False)
    reasons = blockers(state)

    assert len(set(reasons)) >= 3
    assert MSG_NO_SELECTION in reasons
    assert "The minimum order amount is 15,000." in reasons
    assert f"Delivery orders are accepted between {WINDOW}." in reasons
    assert can_submit(state) is False


def test_minimum_amount_scenario():
    below = make_state(selected_amount=12000)
    assert can_submit(below) is False
    assert "The minimum order amount is 15,000." in blockers(below)

    exact = make_state(selected_amount=15000)
    assert can_submit(exact) is True


def test_out_of_range_estimate_blocks_submission():
    state = make_state(estimate=_estimate(distance_km=4.2, fee=4250))

    assert blockers(state) == ["The address is outside the delivery range (3 km)."]
    assert state.estimate.distance_km == 4.2
    assert state.estimate.delivery_fee == 4250


def test_out_of_range_only_warns_when_blocking_is_off():
    state = make_state(estimate=_estimate(distance_km=4.2), block_out_of_range=False)
    assert can_submit(state) is True


def test_distance_equal_to_max_is_in_range():
    assert can_submit(make_state(estimate=_estimate(distance_km=3.0))) is True


def test_suspended_delivery():
    assert blockers(make_state(delivery_enabled=False)) == ["Delivery ordering is currently suspended."]


def test_contact_and_address_required():
    reasons = blockers(make_state(phone="", postal_code=""))
    assert MSG_NO_PHONE in reasons
    assert MSG_NO_ADDRESS in reasons


def test_geocoding_error_is_shown_with_estimate_requirement():
    reasons = blockers(make_state(estimate=None, estimate_error="Could not find the coordinates of this address."))
    assert reasons == [
        "Could not find the coordinates of this address.",
        MSG_ESTIMATE_REQUIRED,
    ]


def test_scheduled_delivery_needs_a_slot():
    assert blockers(make_state(delivery_type=DeliveryType.SCHEDULED)) == [MSG_NO_SLOT]

    chosen = make_state(delivery_type=DeliveryType.SCHEDULED, slot=ScheduledSlot(hour=16, minute=0))
    assert can_submit(chosen) is True


def test_expired_slot_blocks():
    state = make_state(
        delivery_type=DeliveryType.SCHEDULED,
        slot=ScheduledSlot(hour=15, minute=0),
        slot_available=False,
    )
    assert blockers(state) == [MSG_SLOT_EXPIRED]


def test_slot_is_ignored_for_immediate_delivery():
    assert can_submit(make_state(slot=None, slot_available=False)) is True


def test_in_flight_flags_block():
    reasons = blockers(make_state(is_geocoding=True, is_submitting=True))
    assert reasons == [MSG_GEOCODING, MSG_SUBMITTING]


def test_risk_notice_mentions_range():
    assert "(3 km)" in risk_notice(3)
