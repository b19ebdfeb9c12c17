"""Location sources for event discovery."""
import logging
from abc import ABC, abstractmethod
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)


class Coordinates(NamedTuple):
    latitude: float
    longitude: float

    @property
    def latlong(self) -> str:
        """Ticketmaster ``latlong`` parameter value."""
        return f"{self.latitude},{self.longitude}"


# Chicago
DEFAULT_COORDINATES = Coordinates(41.8781, -87.6298)


class LocationSource(ABC):
    """Supplies the user's current coordinates, if known."""

    @abstractmethod
    def current(self) -> Optional[Coordinates]:
        raise NotImplementedError


class FixedLocationSource(LocationSource):
    """Location source returning a fixed pair, or nothing."""

    def __init__(self, coordinates: Optional[Coordinates] = None):
        self.coordinates = coordinates

    def current(self) -> Optional[Coordinates]:
        return self.coordinates


def resolve_coordinates(
    source: Optional[LocationSource],
    fallback: Coordinates = DEFAULT_COORDINATES
) -> Coordinates:
    """Current coordinates from ``source``, or ``fallback`` when unavailable."""
    coordinates = source.current() if source is not None else None
    if coordinates is None:
        logger.info(f"No location available, using fallback {fallback.latlong}")
        return fallback
    return coordinates
