from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from map_apis.data_types import ExternalPlace

__all__ = ["MapAPI", "MapAPIError"]


class MapAPIError(RuntimeError):
    """Transport, status or payload failure reported by an external map provider."""


class MapAPI(ABC):
    """
    Base contract for external mapping providers that supplement the local POI catalogue.

    Subclasses encapsulate provider-specific authentication and transport
    concerns. A provider that is not enabled must answer searches with an
    empty result instead of raising.
    """

    def __init__(self, provider: str) -> None:
        if not provider:
            raise ValueError("provider must be a non-empty string")
        self.provider = provider

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether the provider is configured and switched on."""

    @abstractmethod
    def searchNearby(
        self,
        lng: float,
        lat: float,
        radius: int,
        *,
        types: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ) -> Sequence[ExternalPlace]:
        """
        Return facilities within `radius` meters of (lng, lat).

        Each record carries the provider's own type code and a `"lng,lat"`
        location string. Implementations raise MapAPIError on failure.
        """
