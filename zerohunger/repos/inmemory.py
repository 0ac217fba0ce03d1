# zerohunger/repos/inmemory.py
import threading
import uuid
from typing import Any, Dict, Iterable, List, Optional

from zerohunger.core.geo import GridIndex, haversine_km
from zerohunger.models.donation import Donation, StatusEvent
from zerohunger.models.profiles import NgoProfile, RestaurantProfile

def _id() -> str:
    return uuid.uuid4().hex

def _sorted(items: Iterable[Donation], field: str, descending: bool) -> List[Donation]:
    present = [d for d in items if getattr(d, field) is not None]
    missing = [d for d in items if getattr(d, field) is None]
    present.sort(key=lambda d: getattr(d, field), reverse=descending)
    return present + missing

class InMemoryDonationStore:
    """
    Dict-backed donation store for tests and single-process demos.
    Every read-check-write happens under one lock, which gives update_if and
    delete_if the same all-or-nothing behaviour as the Mongo filters.
    """

    def __init__(self, cell_deg: float = 0.25):
        self._lock = threading.Lock()
        self.donations: Dict[str, Donation] = {}
        self._geo = GridIndex(cell_deg)

    async def ensure_indexes(self):
        return None

    def _index(self, d: Donation) -> None:
        if d.location is not None:
            self._geo.insert(d.id, d.location.lat, d.location.lng)
        else:
            self._geo.remove(d.id)

    async def insert(self, data: Dict[str, Any]) -> Donation:
        d = Donation.model_validate({**data, "id": _id()})
        with self._lock:
            self.donations[d.id] = d
            self._index(d)
        return d

    async def get(self, donation_id: str) -> Optional[Donation]:
        return self.donations.get(donation_id)

    async def find(self, filters: Dict[str, Any], sort: str = "created_at", descending: bool = True) -> List[Donation]:
        with self._lock:
            hits = [d for d in self.donations.values() if d.matches(filters)]
        return _sorted(hits, sort, descending)

    async def find_within(self, lng: float, lat: float, radius_km: float, status: Optional[str] = "available") -> List[Donation]:
        out: List[Donation] = []
        with self._lock:
            for key in self._geo.candidates(lat, lng, radius_km):
                d = self.donations.get(key)
                if d is None or (status and d.status != status):
                    continue
                if haversine_km(lat, lng, d.location.lat, d.location.lng) <= radius_km:
                    out.append(d)
        return out

    async def update_if(
        self,
        donation_id: str,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        event: Optional[StatusEvent] = None,
    ) -> Optional[Donation]:
        with self._lock:
            before = self.donations.get(donation_id)
            if before is None or not before.matches(expected):
                return None
            after = before.apply(changes, event)
            self.donations[donation_id] = after
            if "location" in changes:
                self._index(after)
        return before

    async def delete_if(self, donation_id: str, expected: Dict[str, Any]) -> bool:
        with self._lock:
            d = self.donations.get(donation_id)
            if d is None or not d.matches(expected):
                return False
            del self.donations[donation_id]
            self._geo.remove(donation_id)
        return True

    async def count(self, filters: Dict[str, Any]) -> int:
        return len(await self.find(filters))

    async def distinct(self, field: str, filters: Dict[str, Any]) -> List[Any]:
        vals = {getattr(d, field) for d in await self.find(filters)}
        vals.discard(None)
        return list(vals)

class InMemoryProfileDirectory:
    def __init__(self):
        self.ngos: Dict[str, NgoProfile] = {}
        self.restaurants: Dict[str, RestaurantProfile] = {}
        self._ngo_geo = GridIndex()

    async def ensure_indexes(self):
        return None

    # Seeding (the account service owns these records in production)
    def put_ngo(self, profile: NgoProfile) -> NgoProfile:
        self.ngos[profile.id] = profile
        if profile.location is not None:
            self._ngo_geo.insert(profile.id, profile.location.lat, profile.location.lng)
        else:
            self._ngo_geo.remove(profile.id)
        return profile

    def put_restaurant(self, profile: RestaurantProfile) -> RestaurantProfile:
        self.restaurants[profile.id] = profile
        return profile

    async def get_ngo(self, ngo_id: str) -> Optional[NgoProfile]:
        return self.ngos.get(ngo_id)

    async def get_restaurant(self, restaurant_id: str) -> Optional[RestaurantProfile]:
        return self.restaurants.get(restaurant_id)

    async def get_restaurants(self, ids: Iterable[str]) -> Dict[str, RestaurantProfile]:
        return {i: self.restaurants[i] for i in set(ids) if i in self.restaurants}

    async def verified_ngos_near(self, lng: float, lat: float, radius_km: float) -> List[NgoProfile]:
        out = []
        for key in self._ngo_geo.candidates(lat, lng, radius_km):
            n = self.ngos[key]
            if n.verified and haversine_km(lat, lng, n.location.lat, n.location.lng) <= radius_km:
                out.append(n)
        return out

    async def count_verified(self) -> Dict[str, int]:
        return {
            "ngos": sum(1 for n in self.ngos.values() if n.verified),
            "restaurants": sum(1 for r in self.restaurants.values() if r.verified),
        }
