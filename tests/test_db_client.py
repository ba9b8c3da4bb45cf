"""Tests for DataAPIClient and Db admin commands."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from data_api_sdk import Collection, DataAPIClient, Db, Table, TimeoutOverride

BASE_URL = "https://db.example.com/api/json/v1"


# =============================================================================
# Client
# =============================================================================


class TestClient:
    """Tests for DataAPIClient."""

    def test_db_handle(self, client: DataAPIClient) -> None:
        db = client.db("https://db.example.com/")

        assert isinstance(db, Db)
        assert db.endpoint == "https://db.example.com"
        assert db.keyspace == "default_keyspace"

    def test_db_keyspace_override(self, client: DataAPIClient) -> None:
        assert client.db("https://db.example.com", keyspace="app").keyspace == "app"

    def test_invalid_keyspace(self, client: DataAPIClient) -> None:
        with pytest.raises(ValueError):
            client.db("https://db.example.com", keyspace="bad-name")

    def test_options_from_mapping(self, transport: Any) -> None:
        client = DataAPIClient("t", {"keyspace": "app", "extra_headers": {"X-App": "1"}}, transport=transport)
        assert client.db("https://db.example.com").keyspace == "app"

    def test_unknown_option_rejected(self, transport: Any) -> None:
        with pytest.raises(ValidationError):
            DataAPIClient("t", {"keyspaces": "app"}, transport=transport)

    async def test_token_and_headers(self, transport: Any) -> None:
        client = DataAPIClient("client-token", {"extra_headers": {"X-App": "1"}}, transport=transport)
        transport.queue({"status": {}}, {"status": {}})

        await client.db("https://db.example.com").command({"findCollections": {}})
        await client.db("https://db.example.com", token="db-token").command({"findCollections": {}})

        assert transport.requests[0]["headers"]["Token"] == "client-token"
        assert transport.requests[0]["headers"]["X-App"] == "1"
        assert transport.requests[1]["headers"]["Token"] == "db-token"

    async def test_events_shared_by_databases(self, client: DataAPIClient, transport: Any) -> None:
        seen: list[Any] = []

        @client.on("commandSucceeded")
        def handler(event: Any) -> None:
            seen.append(event.command_name)

        transport.queue({"status": {}}, {"status": {}})
        await client.db("https://a.example.com").command({"findCollections": {}})
        await client.db("https://b.example.com").command({"listTables": {}})

        assert seen == ["findCollections", "listTables"]
        assert client.off("commandSucceeded", handler) is True

    async def test_context_manager_closes_transport(self, transport: Any) -> None:
        async with DataAPIClient("t", transport=transport):
            pass
        assert transport.closed is True

    async def test_timeout_defaults_option(self, transport: Any) -> None:
        client = DataAPIClient("t", {"timeout_defaults": {"request_timeout_ms": 1234}}, transport=transport)
        transport.queue({"status": {}})

        await client.db("https://db.example.com").command({"findCollections": {}})
        assert transport.requests[0]["timeout_ms"] == 1234


# =============================================================================
# Db
# =============================================================================


class TestDb:
    """Tests for Db handles and raw commands."""

    def test_sources(self, db: Db) -> None:
        assert isinstance(db.collection("c"), Collection)
        assert isinstance(db.table("t"), Table)
        assert repr(db) == "Db(endpoint='https://db.example.com', keyspace='default_keyspace')"

    def test_use_keyspace(self, db: Db) -> None:
        db.use_keyspace("other")

        assert db.keyspace == "other"
        assert db.collection("c").keyspace == "other"

        with pytest.raises(ValueError):
            db.use_keyspace("")

    async def test_raw_command(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"ok": 1}})

        result = await db.command({"countDocuments": {}}, collection="users")

        assert result == {"status": {"ok": 1}}
        assert transport.requests[0]["url"] == f"{BASE_URL}/default_keyspace/users"

    async def test_raw_command_rejects_two_targets(self, db: Db) -> None:
        with pytest.raises(ValueError):
            await db.command({"find": {}}, collection="a", table="b")


class TestCollectionAdmin:
    """Tests for collection admin commands."""

    async def test_create_collection(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"ok": 1}})

        coll = await db.create_collection("vectors", definition={"vector": {"dimension": 3, "metric": "cosine"}})

        assert coll.name == "vectors"
        assert transport.last_command == {
            "createCollection": {"name": "vectors", "options": {"vector": {"dimension": 3, "metric": "cosine"}}}
        }
        assert transport.requests[0]["url"] == f"{BASE_URL}/default_keyspace"
        assert transport.requests[0]["timeout_ms"] == 10_000

    async def test_admin_timeout_category(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"ok": 1}})

        await db.create_collection("c", timeout={"request_timeout_ms": 120_000})

        assert transport.requests[0]["timeout_ms"] == 60_000

    async def test_create_in_other_keyspace(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"ok": 1}})

        coll = await db.create_collection("c", keyspace="other")

        assert coll.keyspace == "other"
        assert transport.last_command == {"createCollection": {"name": "c"}}
        assert transport.requests[0]["url"] == f"{BASE_URL}/other"

    async def test_drop_collection(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"ok": 1}})
        await db.drop_collection("c")

        assert transport.last_command == {"deleteCollection": {"name": "c"}}

    async def test_list_collection_names(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"collections": ["a", "b"]}})

        assert await db.list_collection_names() == ["a", "b"]
        assert transport.last_command == {"findCollections": {}}

    async def test_list_collections(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"collections": [{"name": "a", "options": {}}]}})

        assert await db.list_collections() == [{"name": "a", "options": {}}]


class TestTableAdmin:
    """Tests for table admin commands."""

    async def test_create_table(self, db: Db, transport: Any) -> None:
        definition = {"columns": {"id": {"type": "uuid"}}, "primaryKey": "id"}
        transport.queue({"status": {"ok": 1}})

        table = await db.create_table("people", definition=definition, if_not_exists=True)

        assert table.name == "people"
        assert transport.last_command == {
            "createTable": {"name": "people", "definition": definition, "options": {"ifNotExists": True}}
        }

    async def test_drop_table(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"ok": 1}})
        await db.drop_table("people")

        assert transport.last_command == {"dropTable": {"name": "people"}}

    async def test_list_tables(self, db: Db, transport: Any) -> None:
        transport.queue({"status": {"tables": ["people"]}}, {"status": {"tables": [{"name": "people"}]}})

        assert await db.list_table_names() == ["people"]
        assert await db.list_tables() == [{"name": "people"}]
        assert transport.commands == [{"listTables": {}}, {"listTables": {"options": {"explain": True}}}]

    async def test_table_timeout_defaults(self, db: Db, transport: Any) -> None:
        table = db.table("people", timeout_defaults=TimeoutOverride(general_method_timeout_ms=40))
        transport.queue({"status": {"deletedCount": 1}})

        await table.delete_one({"id": 1})
        assert transport.requests[0]["timeout_ms"] == 40
