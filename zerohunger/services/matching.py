# zerohunger/services/matching.py
from math import isfinite
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel

from zerohunger.app_logger import get_logger
from zerohunger.core.errors import InvalidInput, LocationNotSet, NotFound, NotVerified
from zerohunger.core.geo import haversine_km, valid_lat_lng
from zerohunger.core.states import AVAILABLE
from zerohunger.models.actors import NgoActor
from zerohunger.models.donation import Donation, Location
from zerohunger.models.profiles import NgoProfile, RestaurantProfile

log = get_logger("matching")

Order = Literal["distance", "recent"]

class NearbyDonation(BaseModel):
    donation: Donation
    distance_km: float
    restaurant: Optional[RestaurantProfile] = None

def _parse_float(raw, name: str) -> float:
    try:
        v = float(raw)
    except (TypeError, ValueError):
        raise InvalidInput(f"Please provide a valid {name}")
    if not isfinite(v):
        raise InvalidInput(f"Please provide a valid {name}")
    return v

class ProximityMatcher:
    """
    Radius queries over the donation store. Containment is the store's job
    (spatial index); the distance reported on each hit is recomputed here with
    haversine_km so every caller sees the same number.
    """

    def __init__(self, store, profiles, *, public_default_radius_km: float = 5.0):
        self.store = store
        self.profiles = profiles
        self.public_default_radius_km = public_default_radius_km

    async def find_nearby(
        self,
        lat: float,
        lng: float,
        radius_km: float,
        status: Optional[str] = AVAILABLE,
        order: Order = "distance",
    ) -> List[NearbyDonation]:
        hits = await self.store.find_within(lng, lat, radius_km, status)
        out: List[NearbyDonation] = []
        for d in hits:
            if d.location is None:
                continue
            dist = haversine_km(lat, lng, d.location.lat, d.location.lng)
            # the index may round differently at the rim
            if dist <= radius_km:
                out.append(NearbyDonation(donation=d, distance_km=dist))
        if order == "recent":
            out.sort(key=lambda n: n.donation.created_at, reverse=True)
        else:
            out.sort(key=lambda n: n.distance_km)
        return out

    async def _with_restaurants(self, results: List[NearbyDonation]) -> List[NearbyDonation]:
        by_id: Dict[str, RestaurantProfile] = await self.profiles.get_restaurants(
            r.donation.restaurant for r in results
        )
        return [r.model_copy(update={"restaurant": by_id.get(r.donation.restaurant)}) for r in results]

    async def nearby_for_ngo(self, actor: NgoActor, order: Order = "distance") -> List[NearbyDonation]:
        ngo: Optional[NgoProfile] = await self.profiles.get_ngo(actor.id)
        if ngo is None:
            raise NotFound("NGO not found")
        if not ngo.verified:
            raise NotVerified()
        if ngo.location is None:
            log.warning("ngo %s has no geocoded location", ngo.id)
            raise LocationNotSet()
        results = await self.find_nearby(
            ngo.location.lat, ngo.location.lng, ngo.operating_radius, AVAILABLE, order,
        )
        log.info("ngo %s: %d donations within %.1f km", ngo.id, len(results), ngo.operating_radius)
        return await self._with_restaurants(results)

    def _public_radius(self, raw) -> float:
        # missing, unreadable or zero radius means the default; a negative one is a mistake
        try:
            radius = float(raw)
        except (TypeError, ValueError):
            return self.public_default_radius_km
        if not isfinite(radius) or radius == 0:
            return self.public_default_radius_km
        if radius < 0:
            raise InvalidInput("Radius must be a positive number of kilometers")
        return radius

    async def public_nearby(self, lat_raw, lng_raw, radius_raw=None) -> List[NearbyDonation]:
        lat = _parse_float(lat_raw, "latitude")
        lng = _parse_float(lng_raw, "longitude")
        if not valid_lat_lng(lat, lng):
            raise InvalidInput("Please provide valid latitude and longitude")
        radius = self._public_radius(radius_raw)
        results = await self.find_nearby(lat, lng, radius, AVAILABLE, "distance")
        return await self._with_restaurants(results)

    async def ngos_near(self, location: Location, radius_km: float) -> List[NgoProfile]:
        return await self.profiles.verified_ngos_near(location.lng, location.lat, radius_km)
