from __future__ import annotations

from datetime import datetime
from typing import List, Tuple, Union

from storefront.api.delivery.schemas.schema_delivery import DeliveryConfig, ScheduledSlot

# Minimum lead time of a scheduled slot, and width of its courier window
SLOT_LEAD_MINUTES = 60
SLOT_STEP_MINUTES = 60

Now = Union[datetime, Tuple[int, int]]


def _hm(now: Now) -> Tuple[int, int]:
    """
    Accepts a datetime already in the store's timezone or an (hour, minute)
    tuple. Seconds are ignored: 19:30:59 is still 19:30.
    """
    if isinstance(now, datetime):
        return now.hour, now.minute
    return now[0], now[1]


def _total_minutes(now: Now) -> int:
    hour, minute = _hm(now)
    return hour * 60 + minute


def _label(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


class TimeWindowPolicy:
    """
    Opening window of delivery ordering, immediate and scheduled.

    One policy object covers both storefront variants: `enabled` comes from
    the config, `scheduling_supported` turns scheduled delivery on or off
    for the deployment.
    """

    def __init__(self, config: DeliveryConfig, scheduling_supported: bool = True):
        self.config = config
        self.scheduling_supported = scheduling_supported

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def start_minutes(self) -> int:
        return self.config.start_total_minutes

    @property
    def end_minutes(self) -> int:
        return self.config.end_total_minutes

    # ---------------- immediate ----------------

    def is_before_start(self, now: Now) -> bool:
        return _total_minutes(now) < self.start_minutes

    def is_after_deadline(self, now: Now) -> bool:
        # The end minute itself is still open
        return _total_minutes(now) > self.end_minutes

    def inside_window(self, now: Now) -> bool:
        return not self.is_before_start(now) and not self.is_after_deadline(now)

    def immediate_orderable(self, now: Now) -> bool:
        return self.enabled and self.inside_window(now)

    def window_label(self) -> str:
        return (
            f"{_label(self.config.start_hour, self.config.start_minute)} ~ "
            f"{_label(self.config.end_hour, self.config.end_minute)}"
        )

    # ---------------- scheduled ----------------

    @property
    def scheduled_cutoff_minutes(self) -> int:
        """The last slot must land at or before the end, so scheduled orders close one hour earlier."""
        return self.end_minutes - SLOT_LEAD_MINUTES

    def scheduled_cutoff_label(self) -> str:
        cutoff = self.scheduled_cutoff_minutes
        return _label(cutoff // 60, cutoff % 60)

    def is_after_scheduled_cutoff(self, now: Now) -> bool:
        return _total_minutes(now) >= self.scheduled_cutoff_minutes

    def generate_slots(self) -> List[ScheduledSlot]:
        """Hourly boundaries from start + 1h through end, inclusive."""
        return [
            ScheduledSlot.from_total_minutes(total)
            for total in range(self.start_minutes + SLOT_STEP_MINUTES, self.end_minutes + 1, SLOT_STEP_MINUTES)
        ]

    def is_slot_available(self, slot: ScheduledSlot, now: Now) -> bool:
        return slot.total_minutes - _total_minutes(now) >= SLOT_LEAD_MINUTES

    def available_slots(self, now: Now) -> List[ScheduledSlot]:
        return [slot for slot in self.generate_slots() if self.is_slot_available(slot, now)]

    def scheduling_open(self, now: Now) -> bool:
        return (
            self.enabled
            and self.scheduling_supported
            and not self.is_after_scheduled_cutoff(now)
            and bool(self.available_slots(now))
        )
