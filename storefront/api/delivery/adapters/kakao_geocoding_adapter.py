from typing import Any, Dict, List, Optional, Tuple

import httpx

from storefront.api.delivery.contracts.geocoding_contract import IGeocodingProvider
from storefront.api.delivery.schemas.schema_delivery import PostcodeCandidate
from storefront.config import settings
from storefront.core.exceptions import GeocodingError
from storefront.utils.logger import logger

PROVIDER_UNAVAILABLE_MESSAGE = "The map service failed to load. Please contact the store."


class KakaoGeocodingAdapter(IGeocodingProvider):
    """Adapter for the Kakao Local API: address geocoding and postcode search."""

    SEARCH_ADDRESS_PATH = "/v2/local/search/address.json"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.KAKAO_REST_API_KEY
        self.base_url = (base_url or settings.KAKAO_LOCAL_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.GEOCODING_TIMEOUT_SECONDS
        self._transport = transport

    async def _search(self, query: str, size: int) -> List[Dict[str, Any]]:
        if not self.api_key:
            logger.warning("[KakaoGeocodingAdapter] API key not configured")
            raise GeocodingError(PROVIDER_UNAVAILABLE_MESSAGE, code="DLV_GEO_UNAVAILABLE")

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    self.SEARCH_ADDRESS_PATH,
                    params={"query": query, "size": size},
                    headers={"Authorization": f"KakaoAK {self.api_key}"},
                )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code in (401, 403):
                logger.error(
                    f"[KakaoGeocodingAdapter] Access denied for '{query}' (status {status_code}). "
                    f"Check the REST API key and that the Local API is enabled for the app."
                )
            elif status_code == 429:
                logger.error(f"[KakaoGeocodingAdapter] Quota exceeded while searching '{query}'")
            else:
                logger.error(f"[KakaoGeocodingAdapter] HTTP error searching '{query}': status {status_code}")
            raise GeocodingError(PROVIDER_UNAVAILABLE_MESSAGE, code="DLV_GEO_UNAVAILABLE") from e
        except httpx.TimeoutException as e:
            logger.error(f"[KakaoGeocodingAdapter] Timeout after {self.timeout}s searching '{query}'")
            raise GeocodingError(PROVIDER_UNAVAILABLE_MESSAGE, code="DLV_GEO_UNAVAILABLE") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[KakaoGeocodingAdapter] Error searching '{query}': {e}")
            raise GeocodingError(PROVIDER_UNAVAILABLE_MESSAGE, code="DLV_GEO_UNAVAILABLE") from e

        documents = data.get("documents") if isinstance(data, dict) else None
        if not isinstance(documents, list):
            logger.warning(f"[KakaoGeocodingAdapter] Unexpected response for '{query}': {str(data)[:200]}")
            raise GeocodingError(PROVIDER_UNAVAILABLE_MESSAGE, code="DLV_GEO_UNAVAILABLE")
        return documents

    async def resolve_coordinates(self, address: str) -> Optional[Tuple[float, float]]:
        """
        Resolves latitude/longitude for an address.

        Kakao answers with x = longitude and y = latitude, as strings.
        """
        documents = await self._search(address, size=1)
        if not documents:
            logger.info(f"[KakaoGeocodingAdapter] No result for '{address}'")
            return None

        first = documents[0]
        try:
            return float(first["y"]), float(first["x"])
        except (KeyError, TypeError, ValueError):
            logger.warning(f"[KakaoGeocodingAdapter] Result without coordinates for '{address}'")
            return None

    async def search_addresses(self, query: str, max_results: int = 10) -> List[PostcodeCandidate]:
        documents = await self._search(query, size=max_results)

        candidates = []
        for doc in documents[:max_results]:
            road = doc.get("road_address") or {}
            address1 = road.get("address_name") or doc.get("address_name") or ""
            if not address1:
                continue
            try:
                latitude, longitude = float(doc["y"]), float(doc["x"])
            except (KeyError, TypeError, ValueError):
                latitude = longitude = None
            candidates.append(
                PostcodeCandidate(
                    postal_code=road.get("zone_no") or "",
                    address1=address1,
                    address2=road.get("building_name") or "",
                    latitude=latitude,
                    longitude=longitude,
                )
            )
        return candidates
