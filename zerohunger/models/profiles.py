from typing import Optional

from pydantic import BaseModel, Field

from .donation import Location

class RestaurantProfile(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    location: Optional[Location] = None
    verified: bool = False

class NgoProfile(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    location: Optional[Location] = None
    operating_radius: float = Field(5, ge=1, le=100)   # km
    verified: bool = False
