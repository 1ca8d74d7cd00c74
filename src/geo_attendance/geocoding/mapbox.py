from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{lon},{lat}.json"


class ReverseGeocoder(Protocol):
    def reverse(self, latitude: float, longitude: float) -> Optional[str]:
        raise NotImplementedError


class MapboxGeocoder(ReverseGeocoder):
    """Reverse geocoding through the Mapbox places API.

    Addresses are a convenience for HR dashboards: a missing token or any HTTP failure
    yields ``None`` and never blocks attendance marking.
    """

    def __init__(self, access_token: Optional[str], *, session: Optional[requests.Session] = None, timeout: float = 10):
        self._access_token = access_token
        self._session = session or requests.Session()
        self._timeout = timeout

    def reverse(self, latitude: float, longitude: float) -> Optional[str]:
        if not self._access_token:
            logger.warning("Mapbox token missing; skipping reverse geocoding")
            return None

        url = MAPBOX_GEOCODING_URL.format(lon=longitude, lat=latitude)
        try:
            response = self._session.get(url, params={"access_token": self._access_token}, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("Failed to fetch address from Mapbox: %s", e)
            return None

        features = data.get("features") or []
        if not features:
            return None
        return features[0].get("place_name")
