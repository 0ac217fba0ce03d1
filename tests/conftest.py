# tests/conftest.py
from datetime import datetime, timedelta, timezone
from math import pi

import pytest
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

from zerohunger.core.geocode import GeoCandidate
from zerohunger.core.security import create_token
from zerohunger.deps import wire
from zerohunger.main import create_app
from zerohunger.models.actors import AdminActor, NgoActor, RestaurantActor
from zerohunger.models.donation import Location
from zerohunger.models.profiles import NgoProfile, RestaurantProfile
from zerohunger.repos.inmemory import InMemoryDonationStore, InMemoryProfileDirectory
from zerohunger.services.notifications import MemoryNotifier

KM_PER_DEG_LAT = 6371.0 * pi / 180.0

# Restaurant A sits at (12.97, 77.59); NGO B is 3 km due north of it
A_LAT, A_LNG = 12.97, 77.59
B_LAT = A_LAT + 3.0 / KM_PER_DEG_LAT

ADDR_A = "MG Road, Bengaluru"
ADDR_A2 = "Brigade Road, Bengaluru"

def point(lat, lng) -> Location:
    return Location(coordinates=[lng, lat])

def in_hours(h: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=h)

class ScriptedGeocoder:
    """Answers from a fixed address book; ``fail`` makes every call raise."""

    def __init__(self):
        self.places = {}
        self.calls = []
        self.fail = None

    def add(self, address, lat, lng, **extra):
        self.places[address] = GeoCandidate(latitude=lat, longitude=lng, formatted_address=address, **extra)

    async def geocode(self, address):
        self.calls.append(address)
        if self.fail is not None:
            raise self.fail
        c = self.places.get(address)
        return [c] if c else []

@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"

@pytest.fixture
def geocoder():
    g = ScriptedGeocoder()
    g.add(ADDR_A, A_LAT, A_LNG, city="Bengaluru", country_code="in")
    g.add(ADDR_A2, 12.9718, 77.6070, city="Bengaluru", country_code="in")
    return g

@pytest.fixture
def profiles():
    p = InMemoryProfileDirectory()
    p.put_restaurant(RestaurantProfile(
        id="R-A", name="Spice Route Kitchen", email="kitchen@example.com",
        phone="+91-80-5550-1000", address=ADDR_A, location=point(A_LAT, A_LNG), verified=True,
    ))
    p.put_restaurant(RestaurantProfile(id="R-Z", name="Other Diner", email="z@example.com", verified=True))
    p.put_ngo(NgoProfile(
        id="N-B", name="Annapurna Trust", email="b@ngo.example.org", phone="+91-80-5550-2000",
        location=point(B_LAT, A_LNG), operating_radius=10, verified=True,
    ))
    p.put_ngo(NgoProfile(
        id="N-C", name="Second Helping", email="c@ngo.example.org",
        location=point(A_LAT - 0.02, A_LNG), operating_radius=10, verified=True,
    ))
    p.put_ngo(NgoProfile(
        id="N-U", name="Unverified Meals", email="u@ngo.example.org",
        location=point(A_LAT, A_LNG + 0.01), verified=False,
    ))
    p.put_ngo(NgoProfile(id="N-L", name="No Address Yet", email="l@ngo.example.org", verified=True))
    # far away: Mumbai
    p.put_ngo(NgoProfile(
        id="N-F", name="Far Kitchen", email="f@ngo.example.org",
        location=point(19.07, 72.87), operating_radius=10, verified=True,
    ))
    return p

@pytest.fixture
def store():
    return InMemoryDonationStore()

@pytest.fixture
def notifier():
    return MemoryNotifier()

@pytest.fixture
def services(store, profiles, geocoder, notifier):
    return wire(store, profiles, geocoder, notifier)

@pytest.fixture
def engine(services):
    return services.lifecycle

@pytest.fixture
def matcher(services):
    return services.matcher

restaurant_a = RestaurantActor(id="R-A")
restaurant_z = RestaurantActor(id="R-Z")
ngo_b = NgoActor(id="N-B")
ngo_c = NgoActor(id="N-C")
ngo_unverified = NgoActor(id="N-U")
admin = AdminActor(id="ADM-1")

def donation_attrs(**over):
    attrs = {
        "food_type": "Veg biryani",
        "quantity": "40 meals",
        "description": "Packed in foil trays",
        "address": ADDR_A,
        "expiry_time": in_hours(2),
    }
    attrs.update(over)
    return attrs

def auth(sub: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_token(sub, role)}"}

@pytest.fixture
async def test_client(services):
    app = create_app(services)
    async with LifespanManager(app):
        transport = ASGITransport(app=app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
