# zerohunger/core/geocode.py
from __future__ import annotations

import asyncio
from typing import List, Optional

import httpx
from pydantic import BaseModel

from zerohunger.app_logger import get_logger
from zerohunger.core.errors import DependencyUnavailable, GeocodingFailed
from zerohunger.core.geo import valid_lat_lng
from zerohunger.models.donation import Location

log = get_logger("geocode")

OPENCAGE_URL = "https://api.opencagedata.com/geocode/v1/json"
GOOGLE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"

class GeoCandidate(BaseModel):
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country_code: Optional[str] = None

def to_location(c: GeoCandidate) -> Location:
    if not valid_lat_lng(c.latitude, c.longitude):
        raise GeocodingFailed("Invalid coordinates received from geocoding service")
    return Location(
        coordinates=[float(c.longitude), float(c.latitude)],
        formatted_address=c.formatted_address,
        street=c.street,
        city=c.city,
        state=c.state,
        zipcode=c.zipcode,
        country=c.country_code,
    )

class Geocoder:
    """
    Address -> ordered candidates. An empty list means "not found".
    Raises DependencyUnavailable on timeouts / transport errors / upstream 5xx,
    GeocodingFailed on any other upstream refusal.
    """

    def __init__(
        self,
        provider: str = "opencage",
        *,
        timeout_s: float = 10.0,
        opencage_key: Optional[str] = None,
        google_maps_key: Optional[str] = None,
        admin_contact: str = "mailto:admin@example.com",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.provider = provider.lower()
        self.timeout_s = timeout_s
        self.opencage_key = opencage_key
        self.google_maps_key = google_maps_key
        self.admin_contact = admin_contact
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s))

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.AsyncClient] = None) -> "Geocoder":
        return cls(
            settings.geocoder,
            timeout_s=settings.geocode_timeout_s,
            opencage_key=settings.opencage_key,
            google_maps_key=settings.google_maps_key,
            admin_contact=settings.admin_contact,
            client=client,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def geocode(self, address: str) -> List[GeoCandidate]:
        a = (address or "").strip()
        if not a:
            return []
        try:
            return await asyncio.wait_for(self._lookup(a), timeout=self.timeout_s)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            log.warning("geocoding timed out after %.1fs for %r", self.timeout_s, a)
            raise DependencyUnavailable("Geocoding service timed out. Please retry.")
        except httpx.HTTPStatusError as ex:
            code = ex.response.status_code
            log.warning("geocoder answered %s for %r", code, a)
            if code >= 500 or code == 429:
                raise DependencyUnavailable("Geocoding service unavailable. Please retry.")
            raise GeocodingFailed()
        except httpx.TransportError as ex:
            log.warning("geocoder unreachable: %s", ex)
            raise DependencyUnavailable("Geocoding service unreachable. Please retry.")
        except (ValueError, KeyError, TypeError) as ex:
            # 200 with a body we can't read: maintenance page, missing geometry
            log.warning("unreadable geocoder response for %r: %r", a, ex)
            raise GeocodingFailed()

    async def _lookup(self, a: str) -> List[GeoCandidate]:
        if self.provider == "google":
            return await self._google(a)
        if self.provider == "nominatim":
            return await self._nominatim(a)
        return await self._opencage(a)

    async def _opencage(self, a: str) -> List[GeoCandidate]:
        if not self.opencage_key:
            raise GeocodingFailed("OPENCAGE_KEY not set")
        r = await self._client.get(OPENCAGE_URL, params={
            "q": a, "key": self.opencage_key, "no_annotations": 1, "limit": 1,
        }, headers={"Accept": "application/json"})
        r.raise_for_status()
        out = []
        for res in r.json().get("results") or []:
            comp = res.get("components") or {}
            g = res["geometry"]
            out.append(GeoCandidate(
                latitude=float(g["lat"]),
                longitude=float(g["lng"]),
                formatted_address=res.get("formatted"),
                street=comp.get("road"),
                city=comp.get("city") or comp.get("town") or comp.get("village"),
                state=comp.get("state_code"),
                zipcode=comp.get("postcode"),
                country_code=comp.get("country_code"),
            ))
        return out

    async def _google(self, a: str) -> List[GeoCandidate]:
        if not self.google_maps_key:
            raise GeocodingFailed("GOOGLE_MAPS_KEY not set")
        r = await self._client.get(GOOGLE_URL, params={"address": a, "key": self.google_maps_key})
        r.raise_for_status()
        out = []
        for res in r.json().get("results") or []:
            comp = {}
            for c in res.get("address_components") or []:
                for t in c.get("types") or []:
                    comp.setdefault(t, c)
            def short(t):
                return (comp.get(t) or {}).get("short_name")
            def long_(t):
                return (comp.get(t) or {}).get("long_name")
            loc = res["geometry"]["location"]
            out.append(GeoCandidate(
                latitude=float(loc["lat"]),
                longitude=float(loc["lng"]),
                formatted_address=res.get("formatted_address"),
                street=long_("route"),
                city=long_("locality"),
                state=short("administrative_area_level_1"),
                zipcode=long_("postal_code"),
                country_code=(short("country") or "").lower() or None,
            ))
        return out

    async def _nominatim(self, a: str) -> List[GeoCandidate]:
        # Nominatim policy: identify the app with a UA + contact
        headers = {"User-Agent": f"ZeroHunger/1.0 (+{self.admin_contact})"}
        r = await self._client.get(NOMINATIM_URL, params={
            "q": a, "format": "json", "limit": 1, "addressdetails": 1,
        }, headers=headers)
        r.raise_for_status()
        out = []
        for res in r.json() or []:
            ad = res.get("address") or {}
            out.append(GeoCandidate(
                latitude=float(res["lat"]),
                longitude=float(res["lon"]),
                formatted_address=res.get("display_name"),
                street=ad.get("road"),
                city=ad.get("city") or ad.get("town") or ad.get("village"),
                state=ad.get("state"),
                zipcode=ad.get("postcode"),
                country_code=ad.get("country_code"),
            ))
        return out
