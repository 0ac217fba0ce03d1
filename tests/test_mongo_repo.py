from datetime import datetime, timezone

import pytest
from bson import ObjectId
from pymongo import ReturnDocument

from zerohunger.core.geo import EARTH_RADIUS_KM
from zerohunger.models.donation import StatusEvent
from zerohunger.repos.mongo import MongoDonationStore, mongo_filter, within

pytestmark = pytest.mark.anyio

class RecordingCollection:
    """Just enough of a motor collection to see what the store sends."""

    def __init__(self, before=None):
        self.before = before
        self.calls = []

    async def find_one_and_update(self, flt, upd, return_document=None):
        self.calls.append((flt, upd, return_document))
        return self.before

    async def find_one(self, flt):
        self.calls.append((flt,))
        return None

def _store(col):
    return MongoDonationStore({"donations": col})

def test_mongo_filter_turns_collections_into_in():
    assert mongo_filter({"status": ("available", "claimed"), "ngo": None}) == {
        "status": {"$in": ["available", "claimed"]},
        "ngo": None,
    }
    assert mongo_filter({}) == {}

def test_within_uses_same_earth_radius_as_haversine():
    q = within(77.59, 12.97, 10)
    [[lng, lat], rad] = q["$geoWithin"]["$centerSphere"]
    assert (lng, lat) == (77.59, 12.97)
    assert rad == pytest.approx(10 / EARTH_RADIUS_KM)

async def test_update_if_puts_predicate_in_filter_and_pushes_history():
    oid = ObjectId()
    col = RecordingCollection()
    event = StatusEvent(at=datetime.now(timezone.utc), by="N-B", from_status="available", to_status="claimed")

    res = await _store(col).update_if(str(oid), {"status": "available"}, {"status": "claimed", "ngo": "N-B"}, event)

    assert res is None
    [(flt, upd, rd)] = col.calls
    assert flt == {"_id": oid, "status": "available"}
    assert upd["$set"] == {"status": "claimed", "ngo": "N-B"}
    assert upd["$push"]["history"]["to_status"] == "claimed"
    assert rd is ReturnDocument.BEFORE

async def test_update_if_returns_pre_image():
    oid = ObjectId()
    now = datetime.now(timezone.utc)
    col = RecordingCollection(before={
        "_id": oid, "restaurant": "R-A", "food_type": "Rice", "quantity": "5 kg",
        "address": "MG Road", "expiry_time": now, "status": "available", "created_at": now,
    })
    before = await _store(col).update_if(str(oid), {"status": "available"}, {"status": "claimed"})
    assert before.id == str(oid)
    assert before.status == "available"
    [(flt, upd, _)] = col.calls
    assert "$push" not in upd

async def test_malformed_id_never_reaches_mongo():
    col = RecordingCollection()
    store = _store(col)
    assert await store.get("not-an-object-id") is None
    assert await store.update_if("not-an-object-id", {}, {"status": "claimed"}) is None
    assert col.calls == []
