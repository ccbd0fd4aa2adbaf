from typing import Optional, Dict
from threading import Lock
from storefront.api.delivery.models.coordinates import Coordinates


class CacheAdapter:
    """In-memory cache of geocoded addresses."""

    def __init__(self):
        self._coordinates: Dict[str, Coordinates] = {}
        self._lock = Lock()

    @staticmethod
    def normalize_key(address: str) -> str:
        """Same address typed with different spacing or case hits the same entry."""
        return " ".join(address.split()).lower()

    def get(self, address: str) -> Optional[Coordinates]:
        with self._lock:
            return self._coordinates.get(self.normalize_key(address))

    def set(self, address: str, coordinates: Coordinates):
        with self._lock:
            self._coordinates[self.normalize_key(address)] = coordinates

    def clear(self, address: Optional[str] = None):
        """Clears the cache. With an address, removes only that entry."""
        with self._lock:
            if address:
                self._coordinates.pop(self.normalize_key(address), None)
            else:
                self._coordinates.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._coordinates)
