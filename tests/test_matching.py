from datetime import timedelta

import pytest

from zerohunger.core.errors import InvalidInput, LocationNotSet, NotFound, NotVerified
from zerohunger.core.geo import haversine_km
from zerohunger.models.actors import NgoActor

from .conftest import A_LAT, A_LNG, B_LAT, KM_PER_DEG_LAT, in_hours, ngo_b, ngo_unverified, point

pytestmark = pytest.mark.anyio

def _north_of(lat, km):
    return lat + km / KM_PER_DEG_LAT

async def _put(store, lat, lng, *, status="available", restaurant="R-A", created=None, food="Rice"):
    now = in_hours(0)
    return await store.insert({
        "restaurant": restaurant,
        "ngo": "N-B" if status in ("claimed", "delivered") else None,
        "food_type": food,
        "quantity": "10 kg",
        "address": "somewhere",
        "location": point(lat, lng).model_dump(),
        "expiry_time": in_hours(4),
        "status": status,
        "created_at": created or now,
    })

async def test_radius_is_inclusive_and_tight(matcher, store):
    radius = 5.0
    inside = await _put(store, _north_of(A_LAT, radius - 0.001), A_LNG, food="inside")
    outside = await _put(store, _north_of(A_LAT, radius + 0.001), A_LNG, food="outside")
    found = await matcher.find_nearby(A_LAT, A_LNG, radius)
    ids = [n.donation.id for n in found]
    assert inside.id in ids
    assert outside.id not in ids
    for n in found:
        assert n.distance_km <= radius
        assert n.distance_km == pytest.approx(
            haversine_km(A_LAT, A_LNG, n.donation.location.lat, n.donation.location.lng)
        )

async def test_same_point_distance_zero(matcher, store):
    d = await _put(store, A_LAT, A_LNG)
    [hit] = await matcher.find_nearby(A_LAT, A_LNG, 1)
    assert hit.donation.id == d.id
    assert hit.distance_km == 0

async def test_orders_by_distance_then_recent(matcher, store):
    t0 = in_hours(0)
    far = await _put(store, _north_of(A_LAT, 4), A_LNG, created=t0)
    near = await _put(store, _north_of(A_LAT, 1), A_LNG, created=t0 - timedelta(hours=2))
    mid = await _put(store, _north_of(A_LAT, 2), A_LNG, created=t0 - timedelta(hours=1))

    by_dist = await matcher.find_nearby(A_LAT, A_LNG, 10)
    assert [n.donation.id for n in by_dist] == [near.id, mid.id, far.id]

    by_time = await matcher.find_nearby(A_LAT, A_LNG, 10, order="recent")
    assert [n.donation.id for n in by_time] == [far.id, mid.id, near.id]

async def test_only_available_donations_match(matcher, store):
    await _put(store, A_LAT, A_LNG, status="claimed")
    await _put(store, A_LAT, A_LNG, status="delivered")
    avail = await _put(store, A_LAT, A_LNG)
    found = await matcher.find_nearby(A_LAT, A_LNG, 5)
    assert [n.donation.id for n in found] == [avail.id]

async def test_ngo_feed_uses_operating_radius_and_restaurant_info(matcher, store):
    # B sits 3 km north of A with a 10 km radius
    a = await _put(store, A_LAT, A_LNG)
    far = await _put(store, _north_of(B_LAT, 10.5), A_LNG)
    found = await matcher.nearby_for_ngo(ngo_b)
    assert [n.donation.id for n in found] == [a.id]
    assert found[0].distance_km == pytest.approx(3.0, abs=1e-6)
    assert found[0].restaurant.name == "Spice Route Kitchen"
    assert far.id not in [n.donation.id for n in found]

async def test_ngo_feed_errors(matcher):
    with pytest.raises(NotVerified):
        await matcher.nearby_for_ngo(ngo_unverified)
    with pytest.raises(LocationNotSet):
        await matcher.nearby_for_ngo(NgoActor(id="N-L"))
    with pytest.raises(NotFound):
        await matcher.nearby_for_ngo(NgoActor(id="N-nobody"))

async def test_public_default_radius_is_five_km(matcher, store):
    four = await _put(store, _north_of(A_LAT, 4), A_LNG)
    six = await _put(store, _north_of(A_LAT, 6), A_LNG)
    ids = [n.donation.id for n in await matcher.public_nearby(str(A_LAT), str(A_LNG))]
    assert ids == [four.id]
    ids = [n.donation.id for n in await matcher.public_nearby(str(A_LAT), str(A_LNG), "7")]
    assert ids == [four.id, six.id]

@pytest.mark.parametrize("radius", ["", "0", "wide", "nan"])
async def test_public_unusable_radius_falls_back_to_default(matcher, store, radius):
    four = await _put(store, _north_of(A_LAT, 4), A_LNG)
    await _put(store, _north_of(A_LAT, 6), A_LNG)
    ids = [n.donation.id for n in await matcher.public_nearby(str(A_LAT), str(A_LNG), radius)]
    assert ids == [four.id]

@pytest.mark.parametrize("lat,lng,radius", [
    ("abc", "77.59", None),
    (None, "77.59", None),
    ("12.97", "", None),
    ("91", "77.59", None),
    ("12.97", "181", None),
    ("nan", "77.59", None),
    ("12.97", "77.59", "-3"),
])
async def test_public_rejects_bad_input(matcher, lat, lng, radius):
    with pytest.raises(InvalidInput):
        await matcher.public_nearby(lat, lng, radius)

async def test_ngos_near_only_verified_with_location(matcher):
    ngos = await matcher.ngos_near(point(A_LAT, A_LNG), 10)
    assert sorted(n.id for n in ngos) == ["N-B", "N-C"]
