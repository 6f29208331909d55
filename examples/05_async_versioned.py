import asyncio

from rowguard import AsyncRowGuardDB, async_attempt_save


async def amain():
    db = await AsyncRowGuardDB.in_memory().connect()
    product = await db.reset_versioned_products()

    product.price = "27.50"
    await db.versioned_products.write_direct(product.id, {"stock": 50})

    outcome = await async_attempt_save(db.versioned_products, product)
    print("outcome:", outcome.kind)

    fresh = await db.versioned_products.get(product.id)
    fresh.price = "27.50"
    print("retry:", (await async_attempt_save(db.versioned_products, fresh)).kind)

    await db.close()


if __name__ == "__main__":
    asyncio.run(amain())
