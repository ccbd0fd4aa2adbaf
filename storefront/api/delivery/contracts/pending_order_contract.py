from abc import ABC, abstractmethod
from typing import Optional


class IPendingOrderStore(ABC):
    """Keeps the order code of an unconfirmed payment per checkout session."""

    @abstractmethod
    def save(self, session_id: str, order_code: str) -> None:
        pass

    @abstractmethod
    def get(self, session_id: str) -> Optional[str]:
        pass

    @abstractmethod
    def pop(self, session_id: str) -> Optional[str]:
        """Removes and returns the stored code, if any."""
        pass
