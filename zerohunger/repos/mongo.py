# zerohunger/repos/mongo.py
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, GEOSPHERE, ReturnDocument

from zerohunger.app_logger import get_logger
from zerohunger.core.geo import km_to_radians
from zerohunger.models.donation import Donation, StatusEvent
from zerohunger.models.profiles import NgoProfile, RestaurantProfile

log = get_logger("repos.mongo")

def _oid(s) -> Optional[ObjectId]:
    if isinstance(s, ObjectId):
        return s
    return ObjectId(s) if isinstance(s, str) and ObjectId.is_valid(s) else None

def _id_match(any_id: str) -> Any:
    # profiles may be keyed by ObjectId or by a plain string id
    oid = _oid(any_id)
    return {"$in": [oid, any_id]} if oid else any_id

def mongo_filter(expected: Dict[str, Any]) -> Dict[str, Any]:
    """{"status": ("available", "claimed")} -> {"status": {"$in": [...]}}"""
    q: Dict[str, Any] = {}
    for field, want in expected.items():
        if isinstance(want, (tuple, list, set, frozenset)):
            q[field] = {"$in": list(want)}
        else:
            q[field] = want
    return q

def within(lng: float, lat: float, radius_km: float) -> Dict[str, Any]:
    # centerSphere takes radians; dividing by the same Earth radius as haversine_km
    # keeps index containment and reported distances in agreement
    return {"$geoWithin": {"$centerSphere": [[lng, lat], km_to_radians(radius_km)]}}

def _to_doc(data: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(data)
    doc.pop("id", None)
    return doc

def _donation(doc: Optional[dict]) -> Optional[Donation]:
    if not doc:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return Donation.model_validate(doc)

class MongoDonationStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db["donations"]

    async def ensure_indexes(self):
        existing = [ix["name"] async for ix in self.col.list_indexes()]
        wanted = [
            ([("location", GEOSPHERE)], "location_2dsphere"),
            ([("status", ASCENDING)], "status_1"),
            ([("restaurant", ASCENDING), ("created_at", DESCENDING)], "restaurant_1_created_at_-1"),
            ([("ngo", ASCENDING)], "ngo_1"),
            ([("created_at", DESCENDING)], "created_at_-1"),
        ]
        for keys, name in wanted:
            if name not in existing:
                await self.col.create_index(keys, name=name)
                log.info("created donations index %s", name)

    async def insert(self, data: Dict[str, Any]) -> Donation:
        doc = _to_doc(data)
        res = await self.col.insert_one(doc)
        doc["_id"] = res.inserted_id
        return _donation(doc)

    async def get(self, donation_id: str) -> Optional[Donation]:
        oid = _oid(donation_id)
        if not oid:
            return None
        return _donation(await self.col.find_one({"_id": oid}))

    async def find(self, filters: Dict[str, Any], sort: str = "created_at", descending: bool = True) -> List[Donation]:
        cur = self.col.find(mongo_filter(filters)).sort(sort, DESCENDING if descending else ASCENDING)
        return [_donation(d) async for d in cur]

    async def find_within(self, lng: float, lat: float, radius_km: float, status: Optional[str] = "available") -> List[Donation]:
        q: Dict[str, Any] = {"location": within(lng, lat, radius_km)}
        if status:
            q["status"] = status
        return [_donation(d) async for d in self.col.find(q)]

    async def update_if(
        self,
        donation_id: str,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        event: Optional[StatusEvent] = None,
    ) -> Optional[Donation]:
        """
        Single-document compare-and-set: the predicate rides in the filter, so the
        check and the write are one atomic server-side operation.
        Returns the pre-image, or None when nothing matched.
        """
        oid = _oid(donation_id)
        if not oid:
            return None
        upd: Dict[str, Any] = {"$set": changes}
        if event is not None:
            upd["$push"] = {"history": event.model_dump()}
        before = await self.col.find_one_and_update(
            {"_id": oid, **mongo_filter(expected)},
            upd,
            return_document=ReturnDocument.BEFORE,
        )
        return _donation(before)

    async def delete_if(self, donation_id: str, expected: Dict[str, Any]) -> bool:
        oid = _oid(donation_id)
        if not oid:
            return False
        res = await self.col.delete_one({"_id": oid, **mongo_filter(expected)})
        return res.deleted_count == 1

    async def count(self, filters: Dict[str, Any]) -> int:
        return await self.col.count_documents(mongo_filter(filters))

    async def distinct(self, field: str, filters: Dict[str, Any]) -> List[Any]:
        return [v for v in await self.col.distinct(field, mongo_filter(filters)) if v is not None]

def _profile(model, doc: Optional[dict]):
    if not doc:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return model.model_validate(doc)

class MongoProfileDirectory:
    """Read-only view over the restaurant and NGO collections owned by the account service."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.ngos = db["ngos"]
        self.restaurants = db["restaurants"]

    async def ensure_indexes(self):
        for c in (self.ngos, self.restaurants):
            existing = [ix["name"] async for ix in c.list_indexes()]
            if "location_2dsphere" not in existing:
                await c.create_index([("location", GEOSPHERE)], name="location_2dsphere")

    async def get_ngo(self, ngo_id: str) -> Optional[NgoProfile]:
        return _profile(NgoProfile, await self.ngos.find_one({"_id": _id_match(ngo_id)}))

    async def get_restaurant(self, restaurant_id: str) -> Optional[RestaurantProfile]:
        return _profile(RestaurantProfile, await self.restaurants.find_one({"_id": _id_match(restaurant_id)}))

    async def get_restaurants(self, ids: Iterable[str]) -> Dict[str, RestaurantProfile]:
        ids = list(set(ids))
        if not ids:
            return {}
        keys: List[Any] = list(ids) + [o for o in (_oid(i) for i in ids) if o]
        out: Dict[str, RestaurantProfile] = {}
        async for doc in self.restaurants.find({"_id": {"$in": keys}}):
            p = _profile(RestaurantProfile, doc)
            out[p.id] = p
        return out

    async def verified_ngos_near(self, lng: float, lat: float, radius_km: float) -> List[NgoProfile]:
        q = {"verified": True, "location": within(lng, lat, radius_km)}
        return [_profile(NgoProfile, d) async for d in self.ngos.find(q)]

    async def count_verified(self) -> Dict[str, int]:
        return {
            "ngos": await self.ngos.count_documents({"verified": True}),
            "restaurants": await self.restaurants.count_documents({"verified": True}),
        }
