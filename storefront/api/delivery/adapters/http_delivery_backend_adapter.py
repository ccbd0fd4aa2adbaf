from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from storefront.api.delivery.contracts.delivery_backend_contract import IDeliveryBackend
from storefront.api.delivery.schemas.schema_delivery import (
    DeliveryConfig,
    DeliveryInfo,
    DistanceEstimate,
)
from storefront.api.delivery.schemas.schema_payment import (
    PaymentReadyPayload,
    PaymentReadyResponse,
)
from storefront.core.exceptions import (
    BackendUnavailableError,
    BusinessRuleRejection,
    ConfigurationError,
    PaymentPreparationError,
)
from storefront.utils.logger import logger

PAYMENT_REJECTED_FALLBACK = "Delivery ordering is not possible."


class HttpDeliveryBackendAdapter(IDeliveryBackend):
    """
    Adapter for the storefront REST backend.

    The httpx.AsyncClient is shared by the process; this object only carries
    the visitor's Authorization header, which is forwarded untouched.
    """

    SERVER_TIME_PATH = "/api/server-time"
    CONFIG_PATH = "/api/delivery/config"
    INFO_PATH = "/api/delivery/info"
    FEE_ESTIMATE_PATH = "/api/delivery/fee-estimate"
    RESERVATIONS_PATH = "/api/reservations"
    PAYMENT_READY_PATH = "/api/delivery/payment/ready"
    PAYMENT_CANCEL_PATH = "/api/delivery/payment/cancel"

    def __init__(self, client: httpx.AsyncClient, authorization: Optional[str] = None):
        self._client = client
        self._headers = {"Authorization": authorization} if authorization else {}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, path, headers=self._headers, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"[HttpDeliveryBackendAdapter] {method} {path} failed: {type(e).__name__}: {e}")
            raise BackendUnavailableError(
                "Could not reach the server. Check your network connection.",
                details={"path": path},
            ) from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def get_server_time_ms(self) -> int:
        response = await self._request("GET", self.SERVER_TIME_PATH)
        if response.status_code != 200:
            raise BackendUnavailableError(
                "Server time is unavailable.",
                details={"status": response.status_code},
            )
        data = self._json(response)
        if isinstance(data, dict):
            data = data.get("serverTime", data.get("server_time"))
        try:
            return int(data)
        except (TypeError, ValueError):
            raise BackendUnavailableError("Server time is unavailable.", details={"body": str(data)[:100]})

    async def get_delivery_config(self) -> DeliveryConfig:
        response = await self._request("GET", self.CONFIG_PATH)
        data = self._json(response)
        if response.status_code != 200 or not isinstance(data, dict):
            logger.error(f"[HttpDeliveryBackendAdapter] Delivery config unavailable: status {response.status_code}")
            raise ConfigurationError("Could not load the delivery settings.")
        try:
            return DeliveryConfig.model_validate(data)
        except ValidationError as e:
            logger.error(f"[HttpDeliveryBackendAdapter] Invalid delivery config: {e.errors()}")
            raise ConfigurationError("Could not load the delivery settings.") from e

    async def get_delivery_info(self) -> Optional[DeliveryInfo]:
        response = await self._request("GET", self.INFO_PATH)
        if response.status_code in (204, 404):
            return None
        if response.status_code != 200:
            raise BackendUnavailableError(
                "Could not load the saved delivery address.",
                details={"status": response.status_code},
            )
        data = self._json(response)
        if not isinstance(data, dict):
            return None
        return DeliveryInfo.model_validate(data)

    async def save_delivery_info(self, info: DeliveryInfo) -> DeliveryInfo:
        response = await self._request("PUT", self.INFO_PATH, json=info.model_dump(by_alias=True))
        if response.status_code >= 400:
            logger.warning(f"[HttpDeliveryBackendAdapter] Saving delivery info failed: status {response.status_code}")
            raise PaymentPreparationError(
                "Could not save the delivery address.",
                details={"status": response.status_code},
            )
        data = self._json(response)
        if isinstance(data, dict):
            return DeliveryInfo.model_validate(data)
        return info

    async def get_fee_estimate(self, latitude: float, longitude: float) -> Optional[DistanceEstimate]:
        response = await self._request(
            "GET",
            self.FEE_ESTIMATE_PATH,
            params={"lat": latitude, "lng": longitude},
        )
        if response.status_code != 200:
            logger.warning(f"[HttpDeliveryBackendAdapter] Fee estimate failed: status {response.status_code}")
            return None
        data = self._json(response)
        if not isinstance(data, dict):
            return None
        try:
            return DistanceEstimate.model_validate(data)
        except ValidationError:
            logger.warning(f"[HttpDeliveryBackendAdapter] Unexpected fee estimate body: {data}")
            return None

    async def get_reservations(self, from_date: str, to_date: str) -> List[Dict[str, Any]]:
        response = await self._request(
            "GET",
            self.RESERVATIONS_PATH,
            params={"from": from_date, "to": to_date},
        )
        if response.status_code in (401, 403):
            # Not signed in: the list is simply empty
            return []
        if response.status_code != 200:
            raise ConfigurationError(
                "Could not load the delivery reservations.",
                details={"status": response.status_code},
            )
        data = self._json(response)
        if isinstance(data, dict) and isinstance(data.get("response"), list):
            data = data["response"]
        if not isinstance(data, list):
            raise ConfigurationError("The reservation list is not in the expected format.")
        return data

    async def create_payment_ready(self, payload: PaymentReadyPayload) -> PaymentReadyResponse:
        response = await self._request(
            "POST",
            self.PAYMENT_READY_PATH,
            json=payload.model_dump(by_alias=True),
        )
        if response.status_code == 400:
            data = self._json(response)
            message = data.get("message") if isinstance(data, dict) else None
            raise BusinessRuleRejection(message or PAYMENT_REJECTED_FALLBACK)
        if response.status_code >= 400:
            logger.error(f"[HttpDeliveryBackendAdapter] Payment ready failed: status {response.status_code}")
            raise PaymentPreparationError(
                "Failed to prepare the delivery payment.",
                details={"status": response.status_code},
            )
        data = self._json(response)
        if not isinstance(data, dict):
            raise PaymentPreparationError("Failed to prepare the delivery payment.")
        return PaymentReadyResponse.model_validate(data)

    async def cancel_payment(self, order_code: str) -> None:
        response = await self._request(
            "POST",
            self.PAYMENT_CANCEL_PATH,
            json={"orderCode": order_code},
        )
        if response.status_code >= 400:
            raise PaymentPreparationError(
                f"Cancelling order {order_code} failed.",
                details={"status": response.status_code},
            )
