import time
from typing import Protocol

import httpx
from pydantic import BaseModel, Field

from app.config import settings
from app.integrations.errors import (
    IntegrationBadGatewayError,
    IntegrationError,
    IntegrationNotFoundError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)


class GeoLocation(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    address: str | None = None
    pincode: str | None = None


class GeocoderProtocol(Protocol):
    def geocode_pincode(self, pincode: str) -> GeoLocation: ...


class NominatimGeocoder:
    """Resolve postal codes through an OpenStreetMap Nominatim endpoint."""

    def __init__(
        self,
        base_url: str,
        country_code: str,
        user_agent: str,
        timeout_s: float,
        max_retries: int,
        backoff_s: float,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.country_code = country_code
        self.user_agent = user_agent
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.backoff_s = backoff_s

    def _parse(self, pincode: str, payload: object) -> GeoLocation:
        if not isinstance(payload, list):
            raise IntegrationBadGatewayError("geocoding", "Geocoder returned malformed payload")
        if not payload:
            raise IntegrationNotFoundError("geocoding", f"No match for pincode {pincode}")

        first = payload[0]
        try:
            return GeoLocation(
                lat=float(first["lat"]),
                lng=float(first["lon"]),
                address=first.get("display_name"),
                pincode=pincode,
            )
        except (KeyError, TypeError, ValueError) as err:
            raise IntegrationBadGatewayError(
                "geocoding", "Geocoder result is missing coordinates"
            ) from err

    def geocode_pincode(self, pincode: str) -> GeoLocation:
        if not self.base_url:
            raise IntegrationUnavailableError("geocoding", "Geocoder base URL is not configured")

        params = {
            "q": f"{pincode}, {self.country_code}",
            "format": "json",
            "limit": "1",
            "addressdetails": "1",
        }
        headers = {"User-Agent": self.user_agent}

        integration_error: IntegrationError
        for attempt in range(self.max_retries + 1):
            try:
                with httpx.Client(timeout=self.timeout_s, headers=headers) as client:
                    response = client.get(f"{self.base_url}/search", params=params)

                if response.status_code >= 500:
                    raise IntegrationUnavailableError("geocoding", "Geocoder returned 5xx")
                if response.status_code >= 400:
                    raise IntegrationBadGatewayError(
                        "geocoding", f"Geocoder returned {response.status_code}"
                    )
                return self._parse(pincode, response.json())
            except httpx.TimeoutException:
                integration_error = IntegrationTimeoutError("geocoding")
            except httpx.TransportError as err:
                integration_error = IntegrationUnavailableError("geocoding", str(err))
            except IntegrationUnavailableError as err:
                integration_error = err

            if attempt >= self.max_retries:
                raise integration_error
            time.sleep(self.backoff_s * (2**attempt))

        raise IntegrationUnavailableError("geocoding", "Geocoder retries exhausted")


def get_geocoder() -> GeocoderProtocol:
    return NominatimGeocoder(
        base_url=settings.geocoding_base_url,
        country_code=settings.geocoding_country_code,
        user_agent=settings.geocoding_user_agent,
        timeout_s=settings.geocoding_timeout_s,
        max_retries=settings.geocoding_max_retries,
        backoff_s=settings.geocoding_backoff_s,
    )
