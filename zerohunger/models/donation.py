from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Status = Literal["available", "claimed", "delivered", "cancelled"]

class Location(BaseModel):
    """GeoJSON point plus the structured address returned by the geocoder."""
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2)   # [lng, lat]
    formatted_address: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None

    @field_validator("coordinates")
    @classmethod
    def _in_range(cls, v: List[float]) -> List[float]:
        lng, lat = float(v[0]), float(v[1])
        if not (-180.0 <= lng <= 180.0 and -90.0 <= lat <= 90.0):
            raise ValueError("coordinates must be [lng, lat] within range")
        return [lng, lat]

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]

class StatusEvent(BaseModel):
    at: datetime
    by: str
    from_status: Optional[Status] = None
    to_status: Status
    note: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None

class Donation(BaseModel):
    id: str
    restaurant: str
    ngo: Optional[str] = None
    food_type: str
    quantity: str
    description: Optional[str] = None
    address: str
    location: Optional[Location] = None
    expiry_time: datetime
    status: Status = "available"
    claimed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    history: List[StatusEvent] = []

    def matches(self, expected: Dict[str, Any]) -> bool:
        """
        expected: {"field": value} or {"field": (allowed, values)}.
        Same predicate the Mongo store puts in its update filter.
        """
        for field, want in expected.items():
            have = getattr(self, field)
            if isinstance(want, (tuple, list, set, frozenset)):
                if have not in want:
                    return False
            elif have != want:
                return False
        return True

    def apply(self, changes: Dict[str, Any], event: Optional[StatusEvent] = None) -> "Donation":
        """Return the donation as it looks after ``$set: changes`` (+ ``$push: history``)."""
        data = self.model_dump()
        data.update(changes)
        if event is not None:
            data["history"] = [*data.get("history", []), event.model_dump()]
        return Donation.model_validate(data)
