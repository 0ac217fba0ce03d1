# zerohunger/routers/admin.py
from typing import Optional

from fastapi import APIRouter, Depends

from zerohunger.core.security import require_role
from zerohunger.deps import Services, get_lifecycle, get_services
from zerohunger.schemas import CancelIn, DonationEnvelope, DonationOut, SystemStats
from zerohunger.services.lifecycle import DonationLifecycle
from zerohunger.services.stats import system_stats

router = APIRouter(prefix="/api/admin", tags=["admin"])

@router.put("/donations/{donation_id}/cancel", response_model=DonationEnvelope)
async def cancel_donation(
    donation_id: str,
    body: Optional[CancelIn] = None,
    actor=Depends(require_role("admin")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    d = await engine.cancel(actor, donation_id, body.reason if body else None)
    return {"donation": DonationOut.of(d)}

@router.get("/stats", response_model=SystemStats)
async def stats(
    actor=Depends(require_role("admin")),
    services: Services = Depends(get_services),
):
    return await system_stats(services.store, services.profiles)
