from pydantic import BaseModel
from typing import Optional, Tuple


class Coordinates(BaseModel):
    """Value object for a geographic point."""
    latitude: float
    longitude: float

    def to_tuple(self) -> Tuple[float, float]:
        """Converts to a (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)

    @classmethod
    def from_tuple(cls, coords: Tuple[Optional[float], Optional[float]]) -> Optional["Coordinates"]:
        """Builds from a (latitude, longitude) tuple; None when either side is missing."""
        if coords[0] is None or coords[1] is None:
            return None
        return cls(latitude=coords[0], longitude=coords[1])
