"""Geolocation entry points backed by the nali command-line tool.

Only the city field comes from nali. Continent and country are always the
single-space placeholder; nali output is not parsed for them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from . import availability
from . import logging_utils as log
from . import lookup as nali_lookup
from .buffers import BoundedBuffer, BufferOverflow
from .config_loader import GeoConfig, load_config

PLACEHOLDER = " "


class GeoServiceError(RuntimeError):
    """Base class for geolocation service failures."""


class ToolUnavailable(GeoServiceError):
    pass


class CityLookupFailed(GeoServiceError):
    pass


@dataclass
class GeoLocationRecord:
    continent: BoundedBuffer
    country: BoundedBuffer
    city: BoundedBuffer

    @classmethod
    def allocate(cls, config: GeoConfig) -> "GeoLocationRecord":
        truncate = config.overflow == "truncate"
        return cls(
            continent=BoundedBuffer(config.continent_capacity, truncate=truncate),
            country=BoundedBuffer(config.country_capacity, truncate=truncate),
            city=BoundedBuffer(config.city_capacity, truncate=truncate),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "continent": self.continent.value,
            "country": self.country.value,
            "city": self.city.value,
        }


class GeoLocationService:
    def __init__(self, config: Optional[GeoConfig] = None) -> None:
        self.config = config or load_config()

    def check_available(self) -> bool:
        return availability.check_available(self.config.binary, timeout=self.config.timeout)

    def ensure_ready(self) -> None:
        """Exit the process when nali cannot be run; the feature is unusable without it."""
        if not self.check_available():
            message = f"Unable to find nali-cli program ({self.config.binary})"
            log.error(message)
            raise SystemExit(message)

    def get_continent(self, ip: str) -> str:
        return PLACEHOLDER

    def get_country(self, ip: str) -> str:
        return PLACEHOLDER

    def resolve(self, ip: str, record: Optional[GeoLocationRecord] = None) -> GeoLocationRecord:
        if not self.check_available():
            raise ToolUnavailable(f"{self.config.binary} is not available")
        if record is None:
            record = GeoLocationRecord.allocate(self.config)
        record.continent.write(self.get_continent(ip))
        record.country.write(self.get_country(ip))
        try:
            nali_lookup.lookup(
                ip,
                record.city,
                binary=self.config.binary,
                timeout=self.config.timeout,
                raw_capacity=self.config.raw_capacity,
            )
        except (nali_lookup.GeoLookupError, BufferOverflow) as exc:
            log.debug(f"lookup for {ip} failed: {exc}")
            raise CityLookupFailed(f"city lookup failed for {ip}: {exc}") from exc
        return record


_DEFAULT: Optional[GeoLocationService] = None


def default_service() -> GeoLocationService:
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = GeoLocationService()
    return _DEFAULT


def ensure_ready() -> None:
    default_service().ensure_ready()


def resolve(ip: str) -> GeoLocationRecord:
    return default_service().resolve(ip)


def set_geolocation(
    ip: str,
    continent: BoundedBuffer,
    country: BoundedBuffer,
    city: BoundedBuffer,
) -> bool:
    """Fill the three caller buffers for ``ip``; return False on any failure."""
    record = GeoLocationRecord(continent=continent, country=country, city=city)
    try:
        default_service().resolve(ip, record)
    except GeoServiceError:
        return False
    return True
