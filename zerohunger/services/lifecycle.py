# zerohunger/services/lifecycle.py
"""
Donation lifecycle: create -> claim -> complete, or -> cancel.

Every state change is a single conditional write against the store
(``update_if`` / ``delete_if``) whose filter carries the precondition. When the
write matches nothing, the donation is re-read only to pick the right error;
the re-read never decides whether the write happens.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from zerohunger.app_logger import get_logger
from zerohunger.core.errors import (
    AlreadyClaimed, InvalidAddress, InvalidInput, InvalidState, NotFound, NotVerified, Unauthorized,
)
from zerohunger.core.geocode import to_location
from zerohunger.core.states import (
    AVAILABLE, CANCELLED, CLAIMED, DELIVERED, can_transition, sources_for,
)
from zerohunger.models.actors import NgoActor, RestaurantActor, is_admin
from zerohunger.models.donation import Donation, Location, StatusEvent
from zerohunger.models.profiles import NgoProfile
from zerohunger.schemas import DonationIn, DonationPatch

log = get_logger("lifecycle")

def _utcnow():
    return datetime.now(timezone.utc)

def _aware(dt: datetime) -> datetime:
    # naive timestamps from clients are taken as UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

def _coerce(model, attrs):
    if isinstance(attrs, model):
        return attrs
    try:
        return model.model_validate(dict(attrs or {}))
    except ValidationError as ex:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in ex.errors())
        raise InvalidInput(f"Missing or invalid fields: {fields}")

class DonationLifecycle:
    def __init__(
        self,
        store,
        profiles,
        geocoder,
        dispatcher,
        matcher,
        *,
        notify_radius_km: float = 10.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.profiles = profiles
        self.geocoder = geocoder
        self.dispatcher = dispatcher
        self.matcher = matcher
        self.notify_radius_km = notify_radius_km
        self.now = clock

    # ---------- helpers ----------
    async def _locate(self, address: str) -> Location:
        candidates = await self.geocoder.geocode(address)
        if not candidates:
            raise InvalidAddress()
        return to_location(candidates[0])

    def _check_expiry(self, expiry: datetime) -> datetime:
        expiry = _aware(expiry)
        if expiry <= self.now():
            raise InvalidInput("Expiry time must be in the future")
        return expiry

    async def _require(self, donation_id: str) -> Donation:
        d = await self.store.get(donation_id)
        if d is None:
            raise NotFound()
        return d

    async def _verified_ngo(self, actor) -> NgoProfile:
        ngo = await self.profiles.get_ngo(actor.id)
        if ngo is None:
            raise NotFound("NGO not found")
        if not ngo.verified:
            raise NotVerified()
        return ngo

    def _event(self, actor, src: Optional[str], dst: str, note: Optional[str] = None, **meta) -> StatusEvent:
        return StatusEvent(at=self.now(), by=actor.id, from_status=src, to_status=dst, note=note, meta=meta or None)

    # ---------- create ----------
    async def create(self, actor, attrs: Union[DonationIn, Mapping[str, Any]]) -> Donation:
        if not isinstance(actor, RestaurantActor):
            raise Unauthorized("Only restaurants can create donations")
        body = _coerce(DonationIn, attrs)
        expiry = self._check_expiry(body.expiry_time)
        # geocode before anything is written; a failure here persists nothing
        location = await self._locate(body.address)

        now = self.now()
        donation = await self.store.insert({
            "restaurant": actor.id,
            "ngo": None,
            "food_type": body.food_type,
            "quantity": body.quantity,
            "description": body.description,
            "address": body.address,
            "location": location.model_dump(),
            "expiry_time": expiry,
            "status": AVAILABLE,
            "created_at": now,
            "updated_at": now,
            "history": [self._event(actor, None, AVAILABLE, "created").model_dump()],
        })
        log.info("donation %s created by restaurant %s", donation.id, actor.id)
        self.dispatcher.spawn(f"donation.available:{donation.id}", self._announce(donation))
        return donation

    async def _announce(self, donation: Donation) -> bool:
        ngos = await self.matcher.ngos_near(donation.location, self.notify_radius_km)
        log.info("donation %s: notifying %d nearby ngos", donation.id, len(ngos))
        return await self.dispatcher.donation_available(donation, ngos)

    # ---------- claim ----------
    async def claim(self, actor, donation_id: str) -> Donation:
        if not can_transition(AVAILABLE, CLAIMED, actor.role):
            raise Unauthorized("Only NGOs can claim donations")
        ngo = await self._verified_ngo(actor)
        now = self.now()
        changes = {"status": CLAIMED, "ngo": ngo.id, "claimed_at": now, "updated_at": now}
        event = self._event(actor, AVAILABLE, CLAIMED)
        before = await self.store.update_if(donation_id, {"status": AVAILABLE}, changes, event)
        if before is None:
            if await self.store.get(donation_id) is None:
                raise NotFound()
            raise AlreadyClaimed()
        after = before.apply(changes, event)
        log.info("donation %s claimed by ngo %s", donation_id, ngo.id)
        self.dispatcher.spawn(f"donation.claimed:{donation_id}", self._notify_claimed(after, ngo))
        return after

    async def _notify_claimed(self, donation: Donation, ngo: NgoProfile) -> bool:
        restaurant = await self.profiles.get_restaurant(donation.restaurant)
        return await self.dispatcher.donation_claimed(donation, restaurant, ngo)

    # ---------- complete ----------
    async def complete(self, actor, donation_id: str) -> Donation:
        if not can_transition(CLAIMED, DELIVERED, actor.role):
            raise Unauthorized("Only the claiming NGO can complete a donation")
        now = self.now()
        changes = {"status": DELIVERED, "delivered_at": now, "updated_at": now}
        event = self._event(actor, CLAIMED, DELIVERED)
        before = await self.store.update_if(donation_id, {"status": CLAIMED, "ngo": actor.id}, changes, event)
        if before is None:
            current = await self._require(donation_id)
            if current.ngo is not None and current.ngo != actor.id:
                raise Unauthorized("Not authorized to complete this donation")
            raise InvalidState("Donation must be claimed before completion")
        after = before.apply(changes, event)
        log.info("donation %s delivered by ngo %s", donation_id, actor.id)
        self.dispatcher.spawn(f"donation.delivered:{donation_id}", self._notify_delivered(after))
        return after

    async def _notify_delivered(self, donation: Donation) -> bool:
        restaurant = await self.profiles.get_restaurant(donation.restaurant)
        ngo = await self.profiles.get_ngo(donation.ngo)
        return await self.dispatcher.donation_delivered(donation, restaurant, ngo)

    # ---------- cancel ----------
    async def cancel(self, actor, donation_id: str, reason: Optional[str] = None) -> Donation:
        if not can_transition(AVAILABLE, CANCELLED, actor.role):
            raise Unauthorized("Only administrators can cancel donations")
        reason = (reason or "").strip() or "Admin cancelled"
        now = self.now()
        changes = {
            "status": CANCELLED,
            "cancelled_by": actor.id,
            "cancellation_reason": reason,
            # ngo / claimed_at only describe live claims
            "ngo": None,
            "claimed_at": None,
            "updated_at": now,
        }
        current = await self._require(donation_id)
        if current.status not in sources_for(CANCELLED):
            raise InvalidState(f"Cannot cancel a {current.status} donation")
        # the event keeps who held the claim, since ngo is cleared
        event = self._event(actor, current.status, CANCELLED, reason, ngo=current.ngo)
        before = await self.store.update_if(
            donation_id, {"status": current.status, "ngo": current.ngo}, changes, event,
        )
        if before is None:
            # claimed (or deleted) between the read and the write; decide again on fresh state
            return await self.cancel(actor, donation_id, reason)
        after = before.apply(changes, event)
        log.info("donation %s cancelled by admin %s (was %s)", donation_id, actor.id, before.status)
        self.dispatcher.spawn(f"donation.cancelled:{donation_id}", self._notify_cancelled(after, before.ngo))
        return after

    async def _notify_cancelled(self, donation: Donation, ngo_id: Optional[str]) -> bool:
        restaurant = await self.profiles.get_restaurant(donation.restaurant)
        ngo = await self.profiles.get_ngo(ngo_id) if ngo_id else None
        return await self.dispatcher.donation_cancelled(donation, restaurant, ngo)

    # ---------- update / delete ----------
    def _check_owner(self, actor, d: Donation, verb: str) -> None:
        if is_admin(actor):
            return
        if not isinstance(actor, RestaurantActor) or d.restaurant != actor.id:
            raise Unauthorized(f"Not authorized to {verb} this donation")

    async def update(self, actor, donation_id: str, attrs: Union[DonationPatch, Mapping[str, Any]]) -> Donation:
        patch = _coerce(DonationPatch, attrs)
        current = await self._require(donation_id)
        self._check_owner(actor, current, "update")
        if current.status != AVAILABLE and not is_admin(actor):
            raise InvalidState("Cannot update claimed donation")

        changes: Dict[str, Any] = patch.model_dump(exclude_unset=True, exclude_none=True)
        if "expiry_time" in changes:
            changes["expiry_time"] = self._check_expiry(changes["expiry_time"])
        if "address" in changes:
            if changes["address"] == current.address:
                del changes["address"]
            else:
                changes["location"] = (await self._locate(changes["address"])).model_dump()
        if not changes:
            return current
        changes["updated_at"] = self.now()

        # guard on the status we validated against: a claim landing in between wins
        before = await self.store.update_if(donation_id, {"status": current.status}, changes)
        if before is None:
            await self._require(donation_id)
            raise InvalidState("Donation changed state while being updated")
        log.info("donation %s updated by %s %s: %s", donation_id, actor.role, actor.id, sorted(changes))
        return before.apply(changes)

    async def delete(self, actor, donation_id: str) -> None:
        current = await self._require(donation_id)
        self._check_owner(actor, current, "delete")
        if current.status != AVAILABLE:
            raise InvalidState("Can only delete available donations")
        if not await self.store.delete_if(donation_id, {"status": AVAILABLE}):
            await self._require(donation_id)
            raise InvalidState("Can only delete available donations")
        log.info("donation %s deleted by %s %s", donation_id, actor.role, actor.id)

    # ---------- reads ----------
    async def get(self, actor, donation_id: str) -> Donation:
        d = await self._require(donation_id)
        if is_admin(actor):
            return d
        if isinstance(actor, RestaurantActor) and d.restaurant == actor.id:
            return d
        if isinstance(actor, NgoActor) and (d.ngo == actor.id or d.status == AVAILABLE):
            return d
        raise Unauthorized("Not authorized to view this donation")

    async def list_for(self, actor) -> List[Donation]:
        if isinstance(actor, RestaurantActor):
            return await self.store.find({"restaurant": actor.id})
        if isinstance(actor, NgoActor):
            return await self.store.find({"ngo": actor.id})
        return await self.store.find({})

    async def restaurant_active(self, actor: RestaurantActor) -> List[Donation]:
        return await self.store.find({"restaurant": actor.id, "status": (AVAILABLE, CLAIMED)})

    async def restaurant_completed(self, actor: RestaurantActor) -> List[Donation]:
        return await self.store.find({"restaurant": actor.id, "status": DELIVERED}, sort="delivered_at")

    async def ngo_claimed(self, actor: NgoActor) -> List[Donation]:
        return await self.store.find({"ngo": actor.id}, sort="claimed_at")

    async def ngo_completed(self, actor: NgoActor) -> List[Donation]:
        return await self.store.find({"ngo": actor.id, "status": DELIVERED}, sort="delivered_at")