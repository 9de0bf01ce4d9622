"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...errors import ProviderUnavailable
from ...models.domain import Coordinates, RouteLeg
from ..transport import ProviderTransport, RequestGate

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        gate: RequestGate,
        base_url: str | None = None,
        profile: str | None = None,
        geometries: str | None = None,
        transport: ProviderTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.geometries = geometries or settings.osrm_geometries
        self.transport = transport or ProviderTransport("osrm", "routing", gate)

    def route(self, origin: Coordinates, destination: Coordinates) -> RouteLeg | None:
        """Fetch a single leg between two points.

        Returns ``None`` when OSRM answers without a route. Transport failures
        surface as ``ProviderUnavailable``.
        """
        # OSRM route endpoint expects coordinates as "lon,lat;lon,lat"
        coordinate_str = ";".join(
            f"{point.longitude},{point.latitude}" for point in (origin, destination)
        )
        params = {
            "overview": "full",
            "geometries": self.geometries,
            "steps": "false",
        }
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"
        data = self.transport.get_json(url, params=params)
        if not isinstance(data, dict):
            raise ProviderUnavailable("osrm", "unexpected payload shape")

        if data.get("code") != "Ok" or not data.get("routes"):
            logger.debug(f"OSRM returned no route: {data.get('code')} {data.get('message', '')}")
            return None

        route = data["routes"][0]
        try:
            distance = float(route["distance"])
            duration = float(route["duration"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderUnavailable("osrm", f"route missing distance/duration: {exc}") from exc
        return RouteLeg(
            distance_m=max(distance, 0.0),
            duration_s=max(duration, 0.0),
            geometry=tuple(self._parse_geometry(route.get("geometry"))),
        )

    def _parse_geometry(self, geometry: object) -> list[tuple[float, float]]:
        if geometry is None:
            return []
        if isinstance(geometry, str):
            return decode_polyline(geometry)
        if isinstance(geometry, dict):
            # GeoJSON LineString coordinates are [lon, lat]
            return [(float(lat), float(lon)) for lon, lat in geometry.get("coordinates", [])]
        raise ProviderUnavailable("osrm", f"unsupported geometry type {type(geometry).__name__}")


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lat, lon) coordinates.

    OSRM uses Google's polyline encoding format (precision 5) when
    ``geometries=polyline``.
    """
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        # Decode latitude
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        dlat = ~(result >> 1) if (result & 1) else (result >> 1)
        lat += dlat

        # Decode longitude
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        dlon = ~(result >> 1) if (result & 1) else (result >> 1)
        lon += dlon

        coordinates.append((lat / 1e5, lon / 1e5))

    return coordinates


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by requesting a short route.

    Public OSRM endpoints may not have a /health endpoint, so we test
    connectivity with two nearby coordinates (Sao Paulo).
    """
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        test_coords = "-46.6544,-23.5614;-46.6388,-23.5489"
        url = f"{base}/route/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"overview": "false"}, timeout=5.0)
        response.raise_for_status()
        return response.json().get("code") == "Ok"
    except (httpx.HTTPError, ValueError):
        return False
