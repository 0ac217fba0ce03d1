import pytest

from zerohunger.services.stats import _rate, restaurant_stats, system_stats

from .conftest import admin, donation_attrs, ngo_b, ngo_c, restaurant_a

pytestmark = pytest.mark.anyio

@pytest.mark.parametrize("done,total,rate", [
    (1, 8, 13),
    (3, 8, 38),
    (1, 3, 33),
    (2, 3, 67),
    (0, 5, 0),
    (4, 4, 100),
    (0, 0, 0),
])
def test_rate_rounds_halves_up(done, total, rate):
    assert _rate(done, total) == rate

async def test_restaurant_stats_count_ngos_that_took_food(engine, store):
    ids = [(await engine.create(restaurant_a, donation_attrs())).id for _ in range(8)]
    await engine.claim(ngo_b, ids[0])
    await engine.complete(ngo_b, ids[0])
    await engine.claim(ngo_c, ids[1])
    await engine.cancel(admin, ids[1])

    s = await restaurant_stats(store, restaurant_a)
    assert s == {
        "total_donations": 8,
        "claimed_donations": 0,
        "delivered_donations": 1,
        "unique_ngos_helped": 1,
        "fulfillment_rate": 13,
    }

async def test_system_stats(engine, store, profiles):
    ids = [(await engine.create(restaurant_a, donation_attrs())).id for _ in range(3)]
    await engine.claim(ngo_b, ids[0])
    s = await system_stats(store, profiles)
    assert s["donations"] == {
        "total": 3, "available": 2, "claimed": 1, "delivered": 0, "cancelled": 0,
        "fulfillment_rate": 33,
    }
