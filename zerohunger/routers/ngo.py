# zerohunger/routers/ngo.py
from fastapi import APIRouter, Depends

from zerohunger.core.security import require_role
from zerohunger.deps import get_lifecycle
from zerohunger.schemas import DonationList, DonationOut
from zerohunger.services.lifecycle import DonationLifecycle

router = APIRouter(prefix="/api/ngo", tags=["ngo"])

@router.get("/donations", response_model=DonationList)
async def my_donations(
    actor=Depends(require_role("ngo")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    items = await engine.ngo_claimed(actor)
    return {"count": len(items), "donations": [DonationOut.of(d) for d in items]}

@router.get("/donations/completed", response_model=DonationList)
async def completed_donations(
    actor=Depends(require_role("ngo")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    items = await engine.ngo_completed(actor)
    return {"count": len(items), "donations": [DonationOut.of(d) for d in items]}
