# Data API SDK Examples

# Meant to be run cell by cell: select a part of the code and execute it with Shift+Enter.
# Use the comments as cell boundaries.

# Load requirements

import asyncio
import logging
import os
from datetime import UTC, datetime

from dotenv import load_dotenv

from data_api_sdk import Camel2SnakeCase, CollectionSerDesConfig, DataAPIClient, DataAPIVector

# Load environment from .env (DATA_API_ENDPOINT, DATA_API_TOKEN, optionally DATA_API_KEYSPACE)
load_dotenv()

DATA_API_ENDPOINT = os.getenv("DATA_API_ENDPOINT", "http://localhost:8181")
DATA_API_TOKEN = os.getenv("DATA_API_TOKEN")
DATA_API_KEYSPACE = os.getenv("DATA_API_KEYSPACE", "default_keyspace")

logging.basicConfig(level=logging.INFO)

client = DataAPIClient(DATA_API_TOKEN, {"keyspace": DATA_API_KEYSPACE})
db = client.db(DATA_API_ENDPOINT)


# Print every failed command
@client.on("commandFailed")
def report(event):
    print(event.format())


async def create_users():
    users = await db.create_collection(
        "users",
        definition={"vector": {"dimension": 3, "metric": "cosine"}},
        serdes=CollectionSerDesConfig(key_transformer=Camel2SnakeCase()),
    )

    result = await users.insert_many(
        [
            {"name": "John Doe", "age": 30, "joinedAt": datetime.now(UTC), "$vector": DataAPIVector([0.1, 0.2, 0.3])},
            {"name": "Jeanne Doe", "age": 28, "joinedAt": datetime.now(UTC), "$vector": DataAPIVector([0.3, 0.2, 0.1])},
        ]
    )
    print("Users created:", result.inserted_ids)


async def get_users():
    users = db.collection("users", serdes=CollectionSerDesConfig(key_transformer=Camel2SnakeCase()))

    async with users.find({}) as cursor:
        async for user in cursor:
            print(user["_id"], user["joinedAt"])
            if user["name"] == "Jeanne Doe":
                break

    print("Distinct ages:", await users.distinct("age"))


async def select_age_greater_than():
    users = db.collection("users")
    for user in await users.find({"age": {"$gt": 29}}, projection={"name": 1}).to_list():
        print(user)


async def vector_search():
    users = db.collection("users")
    cursor = users.find(sort={"$vector": [0.1, 0.2, 0.3]}, include_sort_vector=True).include_similarity().limit(1)

    print("Sort vector:", await cursor.get_sort_vector())
    print("Closest:", await cursor.to_list())


async def update_user():
    result = await db.collection("users").update_one({"name": "John Doe"}, {"$set": {"age": 31}})
    print("Users updated:", result.modified_count)


async def count_users():
    print("Users:", await db.collection("users").count_documents({}, upper_bound=1000))


async def delete_users():
    result = await db.collection("users").delete_many({})
    print("Users deleted:", result.deleted_count)


async def drop_collection():
    await db.drop_collection("users")
    print("Collection dropped")


async def main():
    async with client:
        await create_users()
        await get_users()
        await select_age_greater_than()
        await vector_search()
        await update_user()
        await count_users()
        await delete_users()
        await drop_collection()


if __name__ == "__main__":
    asyncio.run(main())
