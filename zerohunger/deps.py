from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request

from zerohunger.core.geocode import Geocoder
from zerohunger.services.lifecycle import DonationLifecycle
from zerohunger.services.matching import ProximityMatcher
from zerohunger.services.notifications import MemoryNotifier, NotificationDispatcher, OutboxNotifier

@dataclass
class Services:
    store: Any
    profiles: Any
    geocoder: Any
    dispatcher: NotificationDispatcher
    matcher: ProximityMatcher
    lifecycle: DonationLifecycle

    async def startup(self):
        await self.store.ensure_indexes()
        await self.profiles.ensure_indexes()

    async def shutdown(self):
        await self.dispatcher.drain()
        aclose = getattr(self.geocoder, "aclose", None)
        if aclose is not None:
            await aclose()

def wire(store, profiles, geocoder, notifier, *, notify_radius_km: float = 10.0,
         public_default_radius_km: float = 5.0, clock=None) -> Services:
    dispatcher = NotificationDispatcher(notifier)
    matcher = ProximityMatcher(store, profiles, public_default_radius_km=public_default_radius_km)
    kwargs = {"clock": clock} if clock else {}
    lifecycle = DonationLifecycle(
        store, profiles, geocoder, dispatcher, matcher,
        notify_radius_km=notify_radius_km, **kwargs,
    )
    return Services(store, profiles, geocoder, dispatcher, matcher, lifecycle)

def build_services(settings, db: Optional[Any] = None) -> Services:
    if settings.store_backend == "memory":
        from zerohunger.repos.inmemory import InMemoryDonationStore, InMemoryProfileDirectory
        store, profiles = InMemoryDonationStore(), InMemoryProfileDirectory()
    else:
        from zerohunger.db import get_db
        from zerohunger.repos.mongo import MongoDonationStore, MongoProfileDirectory
        db = db if db is not None else get_db()
        store, profiles = MongoDonationStore(db), MongoProfileDirectory(db)

    if settings.notifier == "outbox":
        if db is None:
            raise RuntimeError("outbox notifier needs the mongo store backend")
        notifier = OutboxNotifier(db)
    else:
        notifier = MemoryNotifier()

    return wire(
        store, profiles, Geocoder.from_settings(settings), notifier,
        notify_radius_km=settings.notify_radius_km,
        public_default_radius_km=settings.public_default_radius_km,
    )

def get_services(request: Request) -> Services:
    return request.app.state.services

def get_lifecycle(request: Request) -> DonationLifecycle:
    return get_services(request).lifecycle

def get_matcher(request: Request) -> ProximityMatcher:
    return get_services(request).matcher
