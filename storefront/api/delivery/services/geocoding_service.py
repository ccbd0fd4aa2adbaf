from typing import List, Optional

from storefront.api.delivery.adapters.cache_adapter import CacheAdapter
from storefront.api.delivery.contracts.geocoding_contract import IGeocodingProvider, IGeocodingService
from storefront.api.delivery.models.coordinates import Coordinates
from storefront.api.delivery.schemas.schema_delivery import PostcodeCandidate
from storefront.core.exceptions import GeocodingError
from storefront.utils.logger import logger
from storefront.utils.prometheus_metrics import record_geocoding

ADDRESS_NOT_FOUND_MESSAGE = "Could not find the coordinates of this address."


class GeocodingService(IGeocodingService):
    """Geocoding through a provider, with an in-memory cache of successful lookups."""

    def __init__(self, provider: IGeocodingProvider, cache: Optional[CacheAdapter] = None):
        self.provider = provider
        self.cache = cache or CacheAdapter()

    async def resolve(self, address: str) -> Coordinates:
        address = (address or "").strip()
        if not address:
            raise GeocodingError(ADDRESS_NOT_FOUND_MESSAGE, code="DLV_GEO_NOT_FOUND")

        cached = self.cache.get(address)
        if cached is not None:
            record_geocoding("cache_hit")
            return cached

        try:
            result = await self.provider.resolve_coordinates(address)
        except GeocodingError:
            record_geocoding("unavailable")
            raise

        coordinates = Coordinates.from_tuple(result) if result else None
        if coordinates is None:
            record_geocoding("not_found")
            logger.info(f"[GeocodingService] Address not found: {address}")
            raise GeocodingError(ADDRESS_NOT_FOUND_MESSAGE, code="DLV_GEO_NOT_FOUND")

        record_geocoding("ok")
        self.cache.set(address, coordinates)
        return coordinates

    async def search_postcode(self, query: str, max_results: int = 10) -> List[PostcodeCandidate]:
        query = (query or "").strip()
        if not query:
            return []
        candidates = await self.provider.search_addresses(query, max_results=max_results)
        # Seed the cache so applying a candidate does not geocode it again
        for candidate in candidates:
            coordinates = Coordinates.from_tuple((candidate.latitude, candidate.longitude))
            if coordinates is not None:
                self.cache.set(candidate.address1, coordinates)
        return candidates

    def clear_cache(self, address: Optional[str] = None):
        self.cache.clear(address)
