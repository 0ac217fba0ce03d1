import asyncio

from zerohunger.db import get_client, get_db
from zerohunger.repos.mongo import MongoDonationStore, MongoProfileDirectory

async def main():
    db = get_db()
    await MongoDonationStore(db).ensure_indexes()
    await MongoProfileDirectory(db).ensure_indexes()
    get_client().close()

if __name__ == "__main__":
    asyncio.run(main())
