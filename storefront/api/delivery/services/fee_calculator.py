"""
Delivery distance and fee.

The fee schedule is tiered: a flat fee up to `fee_distance_km`, then a
surcharge per started 100 m. Partial increments always round up.
"""
from __future__ import annotations

import math
from decimal import Decimal, ROUND_CEILING

from storefront.api.delivery.contracts.delivery_backend_contract import IDeliveryBackend
from storefront.api.delivery.contracts.geocoding_contract import IGeocodingService
from storefront.api.delivery.models.coordinates import Coordinates
from storefront.api.delivery.schemas.schema_delivery import DeliveryConfig, FeeEstimate
from storefront.core.exceptions import BackendUnavailableError, FeeEstimateError
from storefront.utils.logger import logger

EARTH_RADIUS_KM = 6371.0
FEE_INCREMENT_KM = Decimal("0.1")

FEE_ESTIMATE_FAILED_MESSAGE = "Failed to calculate the delivery fee."


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points, in km."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def calculate_fee(distance_km: float, config: DeliveryConfig) -> int:
    """
    Tiered delivery fee.

    Works on the decimal repr of the distance: in floats (1.6 - 1.5) / 0.1
    is 1.0000000000000009, which would charge two increments for 100 m.
    """
    distance = Decimal(str(distance_km))
    tier = Decimal(str(config.fee_distance_km))
    if distance <= tier:
        return config.fee_near

    increments = ((distance - tier) / FEE_INCREMENT_KM).to_integral_value(rounding=ROUND_CEILING)
    return config.fee_near + int(increments) * config.fee_per_100m


class DistanceFeeCalculator:
    """
    Address -> coordinates -> distance and fee.

    mode "backend" asks the fee-estimate endpoint; mode "local" computes the
    haversine distance from the store and applies `calculate_fee`.
    """

    def __init__(self, backend: IDeliveryBackend, geocoding: IGeocodingService, mode: str = "backend"):
        if mode not in ("backend", "local"):
            raise ValueError(f"Unknown fee estimate mode: {mode}")
        self._backend = backend
        self._geocoding = geocoding
        self.mode = mode

    async def estimate(self, address: str, config: DeliveryConfig) -> FeeEstimate:
        coordinates = await self._geocoding.resolve(address)
        return await self.estimate_for_coordinates(coordinates, config)

    async def estimate_for_coordinates(self, coordinates: Coordinates, config: DeliveryConfig) -> FeeEstimate:
        if self.mode == "local":
            distance_km = haversine_km(
                config.store_lat, config.store_lng, coordinates.latitude, coordinates.longitude
            )
            fee = calculate_fee(distance_km, config)
        else:
            try:
                estimate = await self._backend.get_fee_estimate(coordinates.latitude, coordinates.longitude)
            except BackendUnavailableError as e:
                raise FeeEstimateError(FEE_ESTIMATE_FAILED_MESSAGE) from e
            if estimate is None:
                raise FeeEstimateError(FEE_ESTIMATE_FAILED_MESSAGE)
            distance_km, fee = estimate.distance_km, estimate.delivery_fee

        out_of_range = distance_km > config.max_distance_km
        if out_of_range:
            logger.info(
                f"[DistanceFeeCalculator] {distance_km:.2f} km is beyond the "
                f"{config.max_distance_km} km delivery range"
            )
        return FeeEstimate(
            coordinates=coordinates,
            distance_km=distance_km,
            delivery_fee=fee,
            out_of_range=out_of_range,
        )
