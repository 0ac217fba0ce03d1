from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from zerohunger.models.donation import Donation, Location, Status

# --------------------------
# Donations (input)
# --------------------------
class DonationIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    food_type: str = Field(..., min_length=1)
    quantity: str = Field(..., min_length=1)
    description: Optional[str] = None
    address: str = Field(..., min_length=1)
    expiry_time: datetime

class DonationPatch(BaseModel):
    """Fields a restaurant (or admin) may edit; status moves only through transitions."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    food_type: Optional[str] = Field(None, min_length=1)
    quantity: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    address: Optional[str] = Field(None, min_length=1)
    expiry_time: Optional[datetime] = None

class CancelIn(BaseModel):
    reason: Optional[str] = None

# --------------------------
# Donations (output)
# --------------------------
class DonationOut(BaseModel):
    id: str
    restaurant: str
    ngo: Optional[str] = None
    food_type: str
    quantity: str
    description: Optional[str] = None
    address: str
    location: Optional[Location] = None
    expiry_time: datetime
    status: Status
    claimed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime

    @classmethod
    def of(cls, d: Donation) -> "DonationOut":
        return cls.model_validate(d.model_dump(exclude={"history", "updated_at"}))

class RestaurantSummary(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[Location] = None

class NearbyDonationOut(DonationOut):
    distance_km: float
    restaurant_info: Optional[RestaurantSummary] = None

class PublicRestaurant(BaseModel):
    name: str
    location: Optional[Location] = None

class PublicDonationOut(BaseModel):
    """What unauthenticated callers may see: no contact details, no actor ids."""
    id: str
    food_type: str
    quantity: str
    location: Optional[Location] = None
    expiry_time: datetime
    distance_km: float
    restaurant: Optional[PublicRestaurant] = None

class DonationEnvelope(BaseModel):
    donation: DonationOut

class DonationList(BaseModel):
    count: int
    donations: List[DonationOut]

class NearbyList(BaseModel):
    count: int
    donations: List[NearbyDonationOut]

class PublicList(BaseModel):
    count: int
    donations: List[PublicDonationOut]

# --------------------------
# Stats
# --------------------------
class DonationCounts(BaseModel):
    total: int
    available: int
    claimed: int
    delivered: int
    cancelled: int
    fulfillment_rate: int

class UserCounts(BaseModel):
    ngos: int
    restaurants: int

class SystemStats(BaseModel):
    donations: DonationCounts
    users: UserCounts

class RestaurantStats(BaseModel):
    total_donations: int
    claimed_donations: int
    delivered_donations: int
    unique_ngos_helped: int
    fulfillment_rate: int
