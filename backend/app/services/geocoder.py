"""Nominatim geocoder client with retry logic and a bounded result cache."""

import asyncio
import logging
import re
from functools import lru_cache
from typing import Any

import httpx
from cachetools import LRUCache

from app.config import get_settings
from app.errors import UpstreamUnavailable
from app.schemas.geocode import GeocodeResult
from app.schemas.viewport import Viewport

logger = logging.getLogger(__name__)
settings = get_settings()

_BLOCK_NUMBER = re.compile(r"^(\d*)(X+)(?=\s|$)", re.IGNORECASE)


def block_to_address(block: str, city_suffix: str = settings.geocoder_city_suffix) -> str:
    """
    Turn a redacted block into a street address.

    Police blocks hide the last digits of the house number with X
    ("98X UNIVERSITY AV W"); those become zeros.
    """
    block = " ".join(block.split())
    street = _BLOCK_NUMBER.sub(lambda m: m.group(1) + "0" * len(m.group(2)), block)
    return f"{street}, {city_suffix}" if city_suffix else street


class NominatimGeocoder:
    """
    Client for the OpenStreetMap Nominatim API.

    Features:
    - Exponential backoff retry on transport errors, 429 and 5xx
    - LRU cache of results keyed by normalized query and search region
    - "Nothing found" is a normal result (None) and is cached too
    """

    def __init__(
        self,
        base_url: str = settings.geocoder_base_url,
        user_agent: str = settings.geocoder_user_agent,
        max_retries: int = settings.geocoder_max_retries,
        timeout: float = settings.geocoder_timeout,
        cache_size: int = settings.geocode_cache_size,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout
        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": user_agent,  # Nominatim usage policy requires one
        }
        self._cache: LRUCache = LRUCache(maxsize=cache_size)

    @staticmethod
    def normalize_query(text: str) -> str:
        """Case- and whitespace-insensitive cache key for free-text queries."""
        return " ".join(text.lower().split())

    async def _request_with_retry(self, path: str, params: dict[str, Any]) -> Any:
        """Make HTTP request with exponential backoff retry."""
        url = f"{self.base_url}{path}"
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, headers=self.headers, params=params)
                    response.raise_for_status()
                    return response.json()

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code
                if status != 429 and status < 500:
                    raise UpstreamUnavailable(f"Geocoder HTTP error: {status}") from e
                if attempt + 1 < self.max_retries:
                    wait_time = 2**attempt
                    logger.warning(f"Geocoder returned {status}, retry in {wait_time}s")
                    await asyncio.sleep(wait_time)

            except httpx.RequestError as e:
                last_error = e
                if attempt + 1 < self.max_retries:
                    wait_time = 2**attempt
                    logger.warning(f"Geocoder request error: {e}, retry in {wait_time}s")
                    await asyncio.sleep(wait_time)

        raise UpstreamUnavailable(
            f"Geocoder unavailable after {self.max_retries} attempts: {last_error}"
        )

    async def search(self, text: str, viewport: Viewport | None = None) -> GeocodeResult | None:
        """
        Forward geocode free text, restricted to `viewport` when given.

        Returns the best hit or None when nothing matches.
        """
        query = self.normalize_query(text)
        if not query:
            return None

        bounds = (
            (viewport.min_lat, viewport.max_lat, viewport.min_lng, viewport.max_lng)
            if viewport
            else None
        )
        key = ("search", query, bounds)
        if key in self._cache:
            return self._cache[key]

        params: dict[str, Any] = {"q": text.strip(), "format": "json", "limit": 1}
        if viewport:
            # viewbox order is left,top,right,bottom
            params["viewbox"] = (
                f"{viewport.min_lng},{viewport.max_lat},{viewport.max_lng},{viewport.min_lat}"
            )
            params["bounded"] = 1

        logger.info(f"Geocoding '{query}'")
        results = await self._request_with_retry("/search", params)

        hit = None
        if results:
            first = results[0]
            hit = GeocodeResult(
                lat=float(first["lat"]),
                lng=float(first["lon"]),
                label=first.get("display_name") or text.strip(),
            )

        self._cache[key] = hit
        return hit

    async def reverse(self, lat: float, lng: float) -> str | None:
        """Reverse geocode a point to a display label, or None when nothing is there."""
        key = ("reverse", round(lat, 6), round(lng, 6))
        if key in self._cache:
            return self._cache[key]

        data = await self._request_with_retry(
            "/reverse", {"lat": lat, "lon": lng, "format": "json"}
        )
        # Nominatim answers 200 with {"error": ...} when nothing is found.
        label = data.get("display_name") if isinstance(data, dict) else None

        self._cache[key] = label
        return label

    def clear_cache(self) -> None:
        self._cache.clear()


@lru_cache
def get_geocoder() -> NominatimGeocoder:
    """Process-wide geocoder so its cache is shared between requests."""
    return NominatimGeocoder()
