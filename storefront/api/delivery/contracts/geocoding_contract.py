from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from storefront.api.delivery.models.coordinates import Coordinates
from storefront.api.delivery.schemas.schema_delivery import PostcodeCandidate


class IGeocodingProvider(ABC):
    """Interface for geocoding providers (Kakao Local, ...)."""

    @abstractmethod
    async def resolve_coordinates(self, address: str) -> Optional[Tuple[float, float]]:
        """
        Resolves latitude/longitude for an address.

        Args:
            address: Address as free text

        Returns:
            (latitude, longitude) tuple or None when nothing matches

        Raises:
            GeocodingError: provider unavailable
        """
        pass

    @abstractmethod
    async def search_addresses(self, query: str, max_results: int = 10) -> List[PostcodeCandidate]:
        """Postcode/address search for the address picker."""
        pass


class IGeocodingService(ABC):
    """Geocoding with cache on top of a provider."""

    @abstractmethod
    async def resolve(self, address: str) -> Coordinates:
        """
        Raises:
            GeocodingError: provider unavailable or address not found
        """
        pass

    @abstractmethod
    async def search_postcode(self, query: str, max_results: int = 10) -> List[PostcodeCandidate]:
        pass

    @abstractmethod
    def clear_cache(self, address: Optional[str] = None):
        pass
