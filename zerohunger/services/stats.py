# zerohunger/services/stats.py
from zerohunger.core.states import AVAILABLE, CANCELLED, CLAIMED, DELIVERED
from zerohunger.models.actors import RestaurantActor

def _rate(done: int, total: int) -> int:
    # halves round up: 1 of 8 is 13%
    return int(done * 100 / total + 0.5) if total > 0 else 0

async def system_stats(store, profiles) -> dict:
    """
    Matches the SystemStats schema. Store must implement count(filters);
    profiles must implement count_verified().
    """
    counts = {s: await store.count({"status": s}) for s in (AVAILABLE, CLAIMED, DELIVERED, CANCELLED)}
    total = await store.count({})
    return {
        "donations": {
            "total": total,
            **counts,
            "fulfillment_rate": _rate(counts[CLAIMED] + counts[DELIVERED], total),
        },
        "users": await profiles.count_verified(),
    }

async def restaurant_stats(store, actor: RestaurantActor) -> dict:
    mine = {"restaurant": actor.id}
    total = await store.count(mine)
    claimed = await store.count({**mine, "status": CLAIMED})
    delivered = await store.count({**mine, "status": DELIVERED})
    # cancelled donations had their ngo cleared, so this counts NGOs that actually took food
    ngos = await store.distinct("ngo", {**mine, "status": (CLAIMED, DELIVERED)})
    return {
        "total_donations": total,
        "claimed_donations": claimed,
        "delivered_donations": delivered,
        "unique_ngos_helped": len(ngos),
        "fulfillment_rate": _rate(claimed + delivered, total),
    }
