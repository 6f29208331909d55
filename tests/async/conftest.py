import pytest_asyncio

from rowguard import AsyncRowGuardDB


@pytest_asyncio.fixture
async def async_db():
    db = await AsyncRowGuardDB.in_memory().connect()
    try:
        await db.reset_versioned_products()
        yield db
    finally:
        await db.close()
