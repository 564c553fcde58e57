"""VIN decoding via the NHTSA vPIC API with an offline fallback."""

import asyncio
import logging
import time
from typing import Dict, Any, Optional, Tuple

import requests

logger = logging.getLogger(__name__)


# Position 10 model year codes for the 2001-2030 cycle.
MODEL_YEAR_CODES: Dict[str, int] = {
    '1': 2001, '2': 2002, '3': 2003, '4': 2004, '5': 2005,
    '6': 2006, '7': 2007, '8': 2008, '9': 2009,
    'A': 2010, 'B': 2011, 'C': 2012, 'D': 2013, 'E': 2014,
    'F': 2015, 'G': 2016, 'H': 2017, 'J': 2018, 'K': 2019,
    'L': 2020, 'M': 2021, 'N': 2022, 'P': 2023, 'R': 2024,
    'S': 2025, 'T': 2026, 'V': 2027, 'W': 2028, 'X': 2029,
    'Y': 2030,
}

# World Manufacturer Identifier sample table (first three characters).
WMI_MANUFACTURERS: Dict[str, Tuple[str, str]] = {
    '1G1': ('Chevrolet', 'USA'),
    '1FA': ('Ford', 'USA'),
    '1FT': ('Ford', 'USA'),
    '1HG': ('Honda', 'USA'),
    '1N4': ('Nissan', 'USA'),
    '2HG': ('Honda', 'Canada'),
    '2T1': ('Toyota', 'Canada'),
    '3VW': ('Volkswagen', 'Mexico'),
    '4T1': ('Toyota', 'USA'),
    '5YJ': ('Tesla', 'USA'),
    'JHM': ('Honda', 'Japan'),
    'JN1': ('Nissan', 'Japan'),
    'JT2': ('Toyota', 'Japan'),
    'JF1': ('Subaru', 'Japan'),
    'WAU': ('Audi', 'Germany'),
    'WBA': ('BMW', 'Germany'),
    'WDB': ('Mercedes-Benz', 'Germany'),
    'WVW': ('Volkswagen', 'Germany'),
    'WP0': ('Porsche', 'Germany'),
    'KM8': ('Hyundai', 'South Korea'),
    'KNA': ('Kia', 'South Korea'),
    'ZAR': ('Alfa Romeo', 'Italy'),
    'ZFF': ('Ferrari', 'Italy'),
}

# vPIC variable name -> our field name
_VPIC_FIELDS = {
    "Make": "make",
    "Model": "model",
    "ModelYear": "year",
    "Trim": "trim",
    "BodyClass": "body_type",
    "DriveType": "drive_type",
    "FuelTypePrimary": "fuel_type",
    "TransmissionStyle": "transmission",
    "EngineCylinders": "cylinders",
    "DisplacementL": "displacement_l",
    "Manufacturer": "manufacturer",
    "PlantCountry": "plant_country",
    "VehicleType": "vehicle_type",
}
_INT_FIELDS = {"year", "cylinders"}


def decode_offline(vin: str) -> Dict[str, Any]:
    """
    Decode what the VIN itself encodes: model year and manufacturer (WMI).

    Args:
        vin: Normalized 17-character VIN

    Returns:
        Dict with any of 'year', 'make', 'country' plus 'source': 'offline'
    """
    decoded: Dict[str, Any] = {"source": "offline"}
    if len(vin) >= 10 and vin[9] in MODEL_YEAR_CODES:
        decoded["year"] = MODEL_YEAR_CODES[vin[9]]
    manufacturer = WMI_MANUFACTURERS.get(vin[:3])
    if manufacturer:
        decoded["make"], decoded["country"] = manufacturer
    return decoded


class VinDecoder:
    """
    Looks up vehicle details for a VIN.

    Results are cached per VIN for ``cache_ttl`` seconds. ``decode`` raises on
    network failure so the calling processor can degrade to unenriched data.
    """

    def __init__(
        self,
        base_url: str = "https://vpic.nhtsa.dot.gov/api/vehicles",
        timeout: float = 10,
        cache_ttl: float = 24 * 3600,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.session = session or requests.Session()
        self._cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    async def decode(self, vin: str) -> Dict[str, Any]:
        """
        Decode a VIN through vPIC.

        Args:
            vin: Normalized 17-character VIN

        Returns:
            Dict of decoded vehicle fields with 'source': 'nhtsa'

        Raises:
            requests.RequestException: On HTTP / network failure
            ValueError: When the response carries no usable results
        """
        cached = self._cache.get(vin)
        if cached and cached[0] > time.monotonic():
            logger.debug(f"VIN cache hit: {vin}")
            return dict(cached[1])

        decoded = await asyncio.to_thread(self._fetch, vin)
        self._cache[vin] = (time.monotonic() + self.cache_ttl, decoded)
        logger.info(
            f"VIN decoded: make={decoded.get('make')}, model={decoded.get('model')}, year={decoded.get('year')}"
        )
        return dict(decoded)

    def _fetch(self, vin: str) -> Dict[str, Any]:
        url = f"{self.base_url}/DecodeVinValues/{vin}"
        response = self.session.get(url, params={"format": "json"}, timeout=self.timeout)
        response.raise_for_status()

        results = response.json().get("Results") or []
        if not results:
            raise ValueError(f"No decode results for VIN {vin}")

        return self._map_results(results[0])

    @staticmethod
    def _map_results(row: Dict[str, Any]) -> Dict[str, Any]:
        decoded: Dict[str, Any] = {"source": "nhtsa"}
        for variable, field_name in _VPIC_FIELDS.items():
            value = row.get(variable)
            if value in (None, "", "Not Applicable"):
                continue
            if field_name in _INT_FIELDS:
                try:
                    value = int(float(value))
                except (TypeError, ValueError):
                    continue
            decoded[field_name] = value
        return decoded

    def clear_cache(self) -> None:
        self._cache.clear()
