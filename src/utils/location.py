from __future__ import annotations

import asyncio
import math
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

import requests

from utils import config
from utils.errors import GeolocationError, TransportError
from utils.logger import get_logger
from utils.storage import LOCATION_KEY, LOCATION_NAME_KEY, LocalStorage

_logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0
FALLBACK_LOCATION_NAME = "Your Location"

Coords = Tuple[float, float]
Locate = Callable[[], Awaitable[Coords]]
ReverseGeocode = Callable[[float, float], Awaitable[str]]

T = TypeVar("T")


def _is_coord(val) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool) and math.isfinite(val)


def haversine(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in km."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    a = min(a, 1.0)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


# ---------------------------
# Platform providers
# ---------------------------


async def ip_locate() -> Coords:
    """
    Best available position source for a terminal app: IP geolocation.
    Permission is modelled by LOCALMART_LOCATION.
    """
    if not config.LOCATION_ENABLED:
        raise GeolocationError("denied")

    def fetch() -> Coords:
        resp = requests.get(config.IP_LOCATE_URL, timeout=config.LOCATION_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
        return float(data["latitude"]), float(data["longitude"])

    try:
        return await asyncio.to_thread(fetch)
    except requests.Timeout as e:
        raise GeolocationError("timeout") from e
    except (requests.RequestException, KeyError, TypeError, ValueError) as e:
        raise GeolocationError("unavailable") from e


async def nominatim_reverse_geocode(lat: float, lng: float) -> str:
    """'area, city' label for a coordinate; network failures raise TransportError."""

    def fetch() -> dict:
        resp = requests.get(
            config.REVERSE_GEOCODE_URL,
            params={"format": "json", "lat": lat, "lon": lng, "zoom": 14},
            headers={"User-Agent": "localmart"},
            timeout=config.LOCATION_TIMEOUT,
        )
        resp.raise_for_status()
        return resp.json()

    try:
        data = await asyncio.to_thread(fetch)
    except requests.RequestException as e:
        raise TransportError(f"Reverse geocoding failed: {e}") from e
    address = data.get("address") or {}
    area = (
        address.get("suburb")
        or address.get("neighbourhood")
        or address.get("town")
        or address.get("village")
        or ""
    )
    city = address.get("city") or address.get("state") or ""
    return f"{area}, {city}" if area else city


# ---------------------------
# Resolver
# ---------------------------


class LocationResolver:
    """
    Holds the customer's position for distance sorting.

    Starts from the persisted location (or the default); a failed request
    leaves the previous position in place and is not retried.
    """

    def __init__(
        self,
        storage: LocalStorage,
        locate: Optional[Locate] = ip_locate,
        reverse_geocode: ReverseGeocode = nominatim_reverse_geocode,
    ) -> None:
        self._storage = storage
        self._locate = locate
        self._reverse_geocode = reverse_geocode
        self.location = self._stored_location()
        self.location_name: str = storage.get(
            LOCATION_NAME_KEY, config.DEFAULT_LOCATION_NAME
        )
        self.error: str = ""
        self.is_loading = False

    def _stored_location(self) -> dict:
        stored = self._storage.get(LOCATION_KEY)
        if (
            isinstance(stored, dict)
            and _is_coord(stored.get("lat"))
            and _is_coord(stored.get("lng"))
        ):
            return {"lat": float(stored["lat"]), "lng": float(stored["lng"])}
        return dict(config.DEFAULT_LOCATION)

    @property
    def has_location(self) -> bool:
        return self.location is not None

    async def request_location(self) -> dict:
        """
        Ask the platform for the current position. Raises GeolocationError
        (denied / unavailable / timeout / unsupported) and keeps the old
        position on failure.
        """
        self.is_loading = True
        self.error = ""
        try:
            if self._locate is None:
                raise GeolocationError("unsupported")
            lat, lng = await self._locate()
            self.location = {"lat": float(lat), "lng": float(lng)}
            self.location_name = await self._label_for(lat, lng)
            self._storage.set(LOCATION_KEY, self.location)
            self._storage.set(LOCATION_NAME_KEY, self.location_name)
            _logger.info(f"Location set to {self.location_name}")
            return self.location
        except GeolocationError as e:
            self.error = str(e)
            _logger.warning(f"Location request failed: {e.code}")
            raise
        finally:
            self.is_loading = False

    async def _label_for(self, lat: float, lng: float) -> str:
        try:
            name = await self._reverse_geocode(lat, lng)
        except Exception as e:  # best-effort label, any failure falls back
            _logger.debug(f"Reverse geocoding failed: {e}")
            return FALLBACK_LOCATION_NAME
        return name or FALLBACK_LOCATION_NAME

    def calculate_distance(self, lat, lng) -> Optional[float]:
        """Distance in km from the current position, None for unusable input."""
        if not (_is_coord(lat) and _is_coord(lng)):
            return None
        here = self.location or config.DEFAULT_LOCATION
        return haversine(here["lat"], here["lng"], float(lat), float(lng))

    def sort_by_distance(
        self,
        rows: Iterable[T],
        coords: Callable[[T], Coords],
        max_km: Optional[float] = None,
    ) -> List[Tuple[T, Optional[float]]]:
        """
        Pair rows with their distance, nearest first. Rows without a usable
        position sort last and are dropped when max_km is given.
        """
        paired = [(row, self.calculate_distance(*coords(row))) for row in rows]
        if max_km is not None:
            paired = [(r, d) for r, d in paired if d is not None and d <= max_km]
        paired.sort(key=lambda p: (p[1] is None, p[1] if p[1] is not None else 0.0))
        return paired
