from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo

from storefront.api.delivery.contracts.delivery_backend_contract import IDeliveryBackend
from storefront.core.exceptions import DeliveryError
from storefront.utils.safe_errors import safe_error_log


class ClockService:
    """
    Trusted "now" for one checkout session.

    The offset to the server clock is fetched once; every later reading is
    the local clock shifted by that offset and rendered in the store's
    timezone. If the fetch fails the offset stays 0 and the local clock is
    used as is.
    """

    def __init__(
        self,
        timezone: str = "Asia/Seoul",
        local_clock: Callable[[], float] = time.time,
    ):
        self._tz = ZoneInfo(timezone)
        self._local_clock = local_clock
        self.offset_ms: int = 0
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def _local_ms(self) -> int:
        return int(self._local_clock() * 1000)

    async def resolve_offset(self, backend: IDeliveryBackend) -> int:
        if self._resolved:
            return self.offset_ms
        try:
            server_ms = await backend.get_server_time_ms()
            self.offset_ms = server_ms - self._local_ms()
        except DeliveryError as e:
            safe_error_log(e, "ClockService - resolve_offset")
        finally:
            self._resolved = True
        return self.offset_ms

    def now(self) -> datetime:
        return datetime.fromtimestamp((self._local_ms() + self.offset_ms) / 1000, tz=self._tz)

    def now_hm(self) -> Tuple[int, int]:
        current = self.now()
        return current.hour, current.minute

    def today(self, now: Optional[datetime] = None) -> str:
        """ISO date (YYYY-MM-DD) in the store's timezone."""
        return (now or self.now()).date().isoformat()
