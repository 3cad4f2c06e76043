"""
Persistence Service Abstract Interface

The remote store is reachable only through slow, fallible network calls with a
read-all / write-slice contract. Implementations: HTTP (serverless data API)
and in-memory (offline use and tests).
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List


class PersistenceService(ABC):
    """Persistence Service Abstract Base Class"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name (e.g., "HTTP data API")"""
        pass

    @abstractmethod
    async def read_all(self, force: bool = False) -> Dict[str, Any]:
        """
        Read the whole dataset.

        Returns:
        - dict with users, samples, works, ratings, settings (camelCase wire shape)

        ``force`` asks the service to bypass its own read cache.
        """
        pass

    @abstractmethod
    async def write_samples(self, user_id: str, samples: List[dict]) -> None:
        """Replace one user's sample file with the given array."""
        pass

    @abstractmethod
    async def write_works(self, user_id: str, works: List[dict]) -> None:
        """Replace one user's works file; the service recomputes the public mirror."""
        pass

    @abstractmethod
    async def system_action(self, action: str, payload: dict) -> Dict[str, Any]:
        """
        Run one system action: saveRating, saveSettings, updateUser, resetPassword.
        """
        pass

    @abstractmethod
    async def auth_action(self, action: str, username: str, password: str) -> Dict[str, Any]:
        """
        Run register or login against the credential service.

        Returns:
        - dict with a sanitized ``user`` (no secret fields)
        """
        pass
