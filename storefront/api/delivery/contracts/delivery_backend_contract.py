from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from storefront.api.delivery.schemas.schema_delivery import (
    DeliveryConfig,
    DeliveryInfo,
    DistanceEstimate,
)
from storefront.api.delivery.schemas.schema_payment import (
    PaymentReadyPayload,
    PaymentReadyResponse,
)


class IDeliveryBackend(ABC):
    """Interface to the REST backend that owns reservations, delivery config and payments."""

    @abstractmethod
    async def get_server_time_ms(self) -> int:
        """Server clock as epoch milliseconds."""
        pass

    @abstractmethod
    async def get_delivery_config(self) -> DeliveryConfig:
        pass

    @abstractmethod
    async def get_delivery_info(self) -> Optional[DeliveryInfo]:
        """Last saved contact/address of the visitor, or None."""
        pass

    @abstractmethod
    async def save_delivery_info(self, info: DeliveryInfo) -> DeliveryInfo:
        pass

    @abstractmethod
    async def get_fee_estimate(self, latitude: float, longitude: float) -> Optional[DistanceEstimate]:
        """
        Distance from the store and delivery fee for a point.

        Returns:
            DistanceEstimate or None when the backend could not estimate it
        """
        pass

    @abstractmethod
    async def get_reservations(self, from_date: str, to_date: str) -> List[Dict[str, Any]]:
        """Raw reservation rows between two ISO dates (inclusive)."""
        pass

    @abstractmethod
    async def create_payment_ready(self, payload: PaymentReadyPayload) -> PaymentReadyResponse:
        """
        Creates the payment-ready record.

        Raises:
            BusinessRuleRejection: the backend refused the order (HTTP 400)
            BackendUnavailableError: transport failure, safe to retry with the same key
        """
        pass

    @abstractmethod
    async def cancel_payment(self, order_code: str) -> None:
        pass
