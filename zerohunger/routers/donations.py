# zerohunger/routers/donations.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from zerohunger.core.security import get_current_actor, require_role
from zerohunger.deps import get_lifecycle, get_matcher
from zerohunger.models.donation import Donation
from zerohunger.schemas import (
    DonationEnvelope, DonationIn, DonationList, DonationOut, DonationPatch,
    NearbyDonationOut, NearbyList, PublicDonationOut, PublicList, PublicRestaurant, RestaurantSummary,
)
from zerohunger.services.lifecycle import DonationLifecycle
from zerohunger.services.matching import NearbyDonation, ProximityMatcher

router = APIRouter(prefix="/api/donations", tags=["donations"])

def _envelope(d: Donation) -> dict:
    return {"donation": DonationOut.of(d)}

def _listing(items: List[Donation]) -> dict:
    return {"count": len(items), "donations": [DonationOut.of(d) for d in items]}

def _nearby(n: NearbyDonation) -> NearbyDonationOut:
    r = n.restaurant
    return NearbyDonationOut(
        **DonationOut.of(n.donation).model_dump(),
        distance_km=n.distance_km,
        restaurant_info=RestaurantSummary(
            id=r.id, name=r.name, address=r.address, phone=r.phone, location=r.location,
        ) if r else None,
    )

def _public(n: NearbyDonation) -> PublicDonationOut:
    d, r = n.donation, n.restaurant
    return PublicDonationOut(
        id=d.id,
        food_type=d.food_type,
        quantity=d.quantity,
        location=d.location,
        expiry_time=d.expiry_time,
        distance_km=n.distance_km,
        restaurant=PublicRestaurant(name=r.name, location=r.location) if r else None,
    )

# ---------- Public ----------
@router.get("/public", response_model=PublicList)
async def public_donations(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radius: Optional[str] = Query(None, description="km, default 5"),
    matcher: ProximityMatcher = Depends(get_matcher),
):
    # raw strings so unparseable numbers surface as invalid_input, not a 422
    found = await matcher.public_nearby(lat, lng, radius)
    return {"count": len(found), "donations": [_public(n) for n in found]}

# ---------- Restaurant ----------
@router.post("", status_code=status.HTTP_201_CREATED, response_model=DonationEnvelope)
async def create_donation(
    body: DonationIn,
    actor=Depends(require_role("restaurant")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    return _envelope(await engine.create(actor, body))

@router.get("/restaurant", response_model=DonationList)
async def donation_history(
    actor=Depends(require_role("restaurant")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    return _listing(await engine.list_for(actor))

# ---------- NGO ----------
@router.get("/nearby", response_model=NearbyList)
async def nearby_donations(
    sort: Literal["distance", "recent"] = Query("distance"),
    actor=Depends(require_role("ngo")),
    matcher: ProximityMatcher = Depends(get_matcher),
):
    found = await matcher.nearby_for_ngo(actor, order=sort)
    return {"count": len(found), "donations": [_nearby(n) for n in found]}

@router.put("/{donation_id}/claim", response_model=DonationEnvelope)
async def claim_donation(
    donation_id: str,
    actor=Depends(require_role("ngo")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    return _envelope(await engine.claim(actor, donation_id))

@router.put("/{donation_id}/complete", response_model=DonationEnvelope)
async def complete_donation(
    donation_id: str,
    actor=Depends(require_role("ngo")),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    return _envelope(await engine.complete(actor, donation_id))

# ---------- Shared ----------
@router.get("", response_model=DonationList)
async def list_donations(
    actor=Depends(get_current_actor),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    return _listing(await engine.list_for(actor))

@router.get("/{donation_id}", response_model=DonationEnvelope)
async def get_donation(
    donation_id: str,
    actor=Depends(get_current_actor),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    return _envelope(await engine.get(actor, donation_id))

@router.put("/{donation_id}", response_model=DonationEnvelope)
async def update_donation(
    donation_id: str,
    body: DonationPatch,
    actor=Depends(get_current_actor),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    return _envelope(await engine.update(actor, donation_id, body))

@router.delete("/{donation_id}")
async def delete_donation(
    donation_id: str,
    actor=Depends(get_current_actor),
    engine: DonationLifecycle = Depends(get_lifecycle),
):
    await engine.delete(actor, donation_id)
    return {"ok": True}
