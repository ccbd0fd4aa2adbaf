from datetime import datetime

import pytest

from storefront.api.delivery.schemas.schema_delivery import DEFAULT_DELIVERY_CONFIG, ScheduledSlot
from storefront.api.delivery.services.time_window_policy import TimeWindowPolicy

from conftest import KST

POLICY = TimeWindowPolicy(DEFAULT_DELIVERY_CONFIG)  # 12:00 ~ 19:30


@pytest.mark.parametrize(
    "now, orderable",
    [
        ((11, 59), False),
        ((12, 0), True),
        ((15, 45), True),
        ((19, 30), True),
        ((19, 31), False),
    ],
)
def test_window_gating(now, orderable):
    assert POLICY.immediate_orderable(now) is orderable


def test_seconds_inside_the_end_minute_are_still_open():
    now = datetime(2026, 10, 17, 19, 30, 59, tzinfo=KST)
    assert POLICY.is_after_deadline(now) is False


def test_disabled_delivery_is_never_orderable():
    policy = TimeWindowPolicy(DEFAULT_DELIVERY_CONFIG.model_copy(update={"enabled": False}))
    assert policy.immediate_orderable((14, 0)) is False
    assert policy.scheduling_open((13, 0)) is False


def test_window_label():
    assert POLICY.window_label() == "12:00 ~ 19:30"


def test_slots_are_hourly_from_start_plus_one_hour():
    slots = POLICY.generate_slots()
    assert [(s.hour, s.minute) for s in slots] == [
        (13, 0), (14, 0), (15, 0), (16, 0), (17, 0), (18, 0), (19, 0),
    ]


def test_slots_include_end_when_aligned():
    config = DEFAULT_DELIVERY_CONFIG.model_copy(
        update={"start_hour": 12, "start_minute": 30, "end_hour": 20, "end_minute": 30}
    )
    slots = TimeWindowPolicy(config).generate_slots()
    assert slots[0] == ScheduledSlot(hour=13, minute=30)
    assert slots[-1] == ScheduledSlot(hour=20, minute=30)


def test_slot_display_range_covers_the_hour_before():
    assert ScheduledSlot(hour=19, minute=0).display_range() == "18:00 ~ 19:00"
    assert ScheduledSlot(hour=13, minute=30).display_range() == "12:30 ~ 13:30"


def test_slot_lead_time_is_exactly_sixty_minutes():
    for total in range(12 * 60, 19 * 60 + 31):
        now = (total // 60, total % 60)
        for slot in POLICY.generate_slots():
            assert POLICY.is_slot_available(slot, now) is (slot.total_minutes - total >= 60)
        for slot in POLICY.available_slots(now):
            assert slot.total_minutes - total >= 60


def test_scheduled_cutoff_is_one_hour_before_end():
    assert POLICY.scheduled_cutoff_minutes == 18 * 60 + 30
    assert POLICY.scheduled_cutoff_label() == "18:30"
    assert POLICY.is_after_scheduled_cutoff((18, 29)) is False
    assert POLICY.is_after_scheduled_cutoff((18, 30)) is True


def test_scheduling_closes_when_no_slot_is_left():
    # Last slot is 19:00, so 18:00 is the last minute it can be booked
    assert POLICY.scheduling_open((18, 0)) is True
    assert POLICY.available_slots((18, 0)) == [ScheduledSlot(hour=19, minute=0)]
    assert POLICY.scheduling_open((18, 1)) is False
    assert POLICY.available_slots((18, 1)) == []


def test_scheduling_can_be_turned_off_for_the_deployment():
    policy = TimeWindowPolicy(DEFAULT_DELIVERY_CONFIG, scheduling_supported=False)
    assert policy.scheduling_open((13, 0)) is False
    assert policy.immediate_orderable((13, 0)) is True
