"""Caller identity resolved once at the HTTP boundary.

The bearer token names a subject and a role; the rest of the code only ever
sees one of the three actor variants below.
"""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

class _Actor(BaseModel):
    model_config = ConfigDict(frozen=True)
    id: str

class RestaurantActor(_Actor):
    role: Literal["restaurant"] = "restaurant"

class NgoActor(_Actor):
    role: Literal["ngo"] = "ngo"

class AdminActor(_Actor):
    role: Literal["admin"] = "admin"

Actor = Annotated[Union[RestaurantActor, NgoActor, AdminActor], Field(discriminator="role")]

_actor_adapter = TypeAdapter(Actor)

def actor_from_claims(sub: str, role: str) -> Actor:
    return _actor_adapter.validate_python({"id": sub, "role": role})

def is_admin(actor) -> bool:
    return isinstance(actor, AdminActor)
