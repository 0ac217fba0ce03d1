import asyncio

from zerohunger.db import get_client, get_db

# Bengaluru demo: restaurant R1 downtown, NGO N1 ~3 km north, N2 unverified
async def main():
    db = get_db()
    await db.restaurants.delete_many({"_id": {"$in": ["R1"]}})
    await db.ngos.delete_many({"_id": {"$in": ["N1", "N2"]}})

    await db.restaurants.insert_one({
        "_id": "R1",
        "name": "Spice Route Kitchen",
        "email": "kitchen@example.com",
        "phone": "+91-80-5550-1000",
        "address": "MG Road, Bengaluru",
        "location": {"type": "Point", "coordinates": [77.59, 12.97]},   # [lon, lat]
        "verified": True,
    })
    await db.ngos.insert_many([
        {"_id": "N1", "name": "Annapurna Trust", "email": "pickup@annapurna.example.org",
         "phone": "+91-80-5550-2000", "location": {"type": "Point", "coordinates": [77.59, 12.997]},
         "operating_radius": 10, "verified": True},
        {"_id": "N2", "name": "New Hope Meals", "email": "hello@newhope.example.org",
         "location": {"type": "Point", "coordinates": [77.60, 12.98]},
         "operating_radius": 5, "verified": False},
    ])
    print("Seeded: R1, N1, N2")
    get_client().close()

if __name__ == "__main__":
    asyncio.run(main())
