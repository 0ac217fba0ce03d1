# zerohunger/services/notifications.py
import asyncio
from datetime import datetime, timezone
from typing import Awaitable, List, Optional, Set

from pydantic import BaseModel

from zerohunger.app_logger import get_logger
from zerohunger.models.donation import Donation
from zerohunger.models.profiles import NgoProfile, RestaurantProfile

log = get_logger("notifications")

def _utcnow():
    return datetime.now(timezone.utc)

class Notification(BaseModel):
    to: str
    subject: str
    text: str
    timestamp: datetime

class MemoryNotifier:
    """Keeps "sent" emails in memory. Owned by the app's service container, never global."""

    def __init__(self):
        self.sent: List[Notification] = []

    async def send(self, recipient: str, subject: str, message: str) -> bool:
        rec = Notification(to=recipient, subject=subject, text=message, timestamp=_utcnow())
        self.sent.append(rec)
        log.info("[mail] to=%s subject=%r", recipient, subject)
        return True

    async def send_bulk(self, recipients: List[str], subject: str, message: str) -> bool:
        ok = True
        for r in recipients:
            ok = await self.send(r, subject, message) and ok
        return ok

    def clear(self) -> None:
        self.sent = []

class OutboxNotifier:
    """Queues mails in the Mongo ``outbox`` collection for the mail relay to pick up."""

    def __init__(self, db):
        self.col = db["outbox"]

    async def send(self, recipient: str, subject: str, message: str) -> bool:
        return await self.send_bulk([recipient], subject, message)

    async def send_bulk(self, recipients: List[str], subject: str, message: str) -> bool:
        if not recipients:
            return True
        now = _utcnow()
        docs = [{
            "channel": "email",
            "target": r,
            "body": {"subject": subject, "message": message},
            "attempts": 0,
            "max_attempts": 6,
            "next_try_at": now,
            "status": "pending",
            "created_at": now,
        } for r in recipients]
        res = await self.col.insert_many(docs)
        return len(res.inserted_ids) == len(docs)

class NotificationDispatcher:
    """
    Runs notification work as background tasks. A transition has already
    committed by the time anything here runs; failures are logged and dropped.
    """

    def __init__(self, notifier):
        self.notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, name: str, work: Awaitable) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._guard(name, work), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, name: str, work: Awaitable) -> None:
        try:
            ok = await work
        except Exception:
            log.exception("notification %s failed", name)
            return
        if ok is False:
            log.warning("notification %s was not accepted by the notifier", name)

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ---------- messages (awaited inside spawned tasks) ----------
    async def donation_available(self, donation: Donation, ngos: List[NgoProfile]) -> bool:
        emails = [n.email for n in ngos if n.email]
        if not emails:
            return True
        return await self.notifier.send_bulk(
            emails,
            "New Donation Available Nearby",
            f"New donation: {donation.food_type} ({donation.quantity})",
        )

    async def donation_claimed(self, donation: Donation, restaurant: Optional[RestaurantProfile], ngo: NgoProfile) -> bool:
        if not restaurant or not restaurant.email:
            log.warning("donation %s claimed but restaurant has no email on file", donation.id)
            return False
        contact = f" Contact: {ngo.phone}" if ngo.phone else ""
        return await self.notifier.send(
            restaurant.email,
            "Donation Claimed",
            f"Your donation ({donation.food_type}) has been claimed by {ngo.name}.{contact}",
        )

    async def donation_delivered(self, donation: Donation, restaurant: Optional[RestaurantProfile], ngo: Optional[NgoProfile]) -> bool:
        if not restaurant or not restaurant.email:
            log.warning("donation %s delivered but restaurant has no email on file", donation.id)
            return False
        who = ngo.name if ngo else "the NGO"
        return await self.notifier.send(
            restaurant.email,
            "Donation Delivered",
            f"Your donation ({donation.food_type}) has been successfully delivered to {who}.",
        )

    async def donation_cancelled(self, donation: Donation, restaurant: Optional[RestaurantProfile], ngo: Optional[NgoProfile]) -> bool:
        reason = donation.cancellation_reason
        ok = True
        # one recipient failing must not stop the other
        if ngo and ngo.email:
            try:
                ok = await self.notifier.send(
                    ngo.email,
                    "Donation Cancellation",
                    f"Donation {donation.id} has been cancelled by admin. Reason: {reason}",
                ) and ok
            except Exception:
                log.exception("cancellation notice to ngo %s failed", ngo.id)
                ok = False
        if restaurant and restaurant.email:
            ok = await self.notifier.send(
                restaurant.email,
                "Donation Cancellation",
                f"Your donation {donation.id} has been cancelled by admin. Reason: {reason}",
            ) and ok
        return ok
