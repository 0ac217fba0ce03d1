# zerohunger/routers/restaurant.py
from fastapi import APIRouter, Depends

from zerohunger.core.security import require_role
from zerohunger.deps import Services, get_lifecycle, get_services
from zerohunger.schemas import DonationList, DonationOut, RestaurantStats
from zerohunger.services.lifecycle import DonationLifecycle
from zerohunger.services.stats import restaurant_stats

router = APIRouter(prefix="/api/restaurant", tags=["restaurant"])

@router.get("/donations/active", response_model=DonationList)
async def active_donations(
    actor=Depends(require_role("restaurant")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    items = await engine.restaurant_active(actor)
    return {"count": len(items), "donations": [DonationOut.of(d) for d in items]}

@router.get("/donations/completed", response_model=DonationList)
async def completed_donations(
    actor=Depends(require_role("restaurant")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    items = await engine.restaurant_completed(actor)
    return {"count": len(items), "donations": [DonationOut.of(d) for d in items]}

@router.get("/stats", response_model=RestaurantStats)
async def stats(
    actor=Depends(require_role("restaurant")),
    services: Services = Depends(get_services),
):
    return await restaurant_stats(services.store, actor)
