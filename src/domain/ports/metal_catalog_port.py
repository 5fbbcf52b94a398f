"""
Port (interface) for the catalog of tracked metal codes.
Infrastructure adapters (e.g. SupabasePriceStore) must implement this interface.
"""

from abc import ABC, abstractmethod


class IMetalCatalog(ABC):
    @abstractmethod
    async def list_metals(self) -> list[str]:
        """Return the metal codes currently tracked by the store."""
        ...
