from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

pytest.importorskip("supabase")

from prospect_triage.config import ConfigurationError  # noqa: E402
from prospect_triage.models import OutreachTask, ProspectStatus  # noqa: E402
from prospect_triage.store.base import StoreReadError, StoreWriteError, SubscriptionLost  # noqa: E402
from prospect_triage.store.supabase import SupabaseProspectStore, extract_record  # noqa: E402


class FakeQuery:
    def __init__(self, client: "FakeClient", table: str) -> None:
        self.client = client
        self.calls: list[tuple] = [("table", table)]
        client.queries.append(self)

    def select(self, *columns: str) -> "FakeQuery":
        self.calls.append(("select",) + columns)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.calls.append(("order", column, desc))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self.calls.append(("limit", size))
        return self

    def update(self, payload: dict) -> "FakeQuery":
        self.calls.append(("update", payload))
        return self

    def insert(self, payload: dict) -> "FakeQuery":
        self.calls.append(("insert", payload))
        return self

    def eq(self, column: str, value: str) -> "FakeQuery":
        self.calls.append(("eq", column, value))
        return self

    async def execute(self):
        if self.client.error is not None:
            raise self.client.error
        return SimpleNamespace(data=self.client.data)


class FakeChannel:
    def __init__(self, name: str) -> None:
        self.name = name
        self.filters = None
        self.insert_callback = None
        self.state_callback = None

    def on_postgres_changes(self, event, schema, table, callback):
        self.filters = (event, schema, table)
        self.insert_callback = callback
        return self

    async def subscribe(self, callback=None):
        self.state_callback = callback
        return self


class FakeClient:
    def __init__(self, data=None, error: Exception | None = None) -> None:
        self.data = data or []
        self.error = error
        self.queries: list[FakeQuery] = []
        self.channels: list[FakeChannel] = []
        self.removed: list[FakeChannel] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def channel(self, name: str) -> FakeChannel:
        channel = FakeChannel(name)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel) -> None:
        self.removed.append(channel)


def _store(client: FakeClient) -> SupabaseProspectStore:
    store = SupabaseProspectStore("https://example.supabase.co", "anon-key", environ={})
    store._client = client
    return store


def test_credentials_come_from_environment() -> None:
    store = SupabaseProspectStore(
        environ={"NEXT_PUBLIC_SUPABASE_URL": "https://demo.supabase.co", "SUPABASE_SERVICE_ROLE_KEY": "secret"}
    )

    assert store.url == "https://demo.supabase.co"
    assert store.key == "secret"


def test_connect_without_credentials_is_a_configuration_error() -> None:
    store = SupabaseProspectStore(environ={})

    with pytest.raises(ConfigurationError):
        asyncio.run(store.connect())


def test_operations_require_connection() -> None:
    store = SupabaseProspectStore("https://example.supabase.co", "key", environ={})

    with pytest.raises(ConfigurationError):
        asyncio.run(store.fetch_recent())


def test_fetch_recent_queries_newest_page() -> None:
    client = FakeClient(data=[{"id": "1"}, {"id": "2"}])
    store = _store(client)

    rows = asyncio.run(store.fetch_recent(200))

    assert rows == [{"id": "1"}, {"id": "2"}]
    assert client.queries[0].calls == [
        ("table", "prospect_properties"),
        ("select", "*"),
        ("order", "created_at", True),
        ("limit", 50),
    ]


def test_writes_target_the_expected_tables() -> None:
    client = FakeClient()
    store = _store(client)

    async def scenario() -> None:
        await store.update_status("1", ProspectStatus.QUALIFIED)
        await store.enqueue_outreach(OutreachTask(lead_id="1", scheduled_for="2024-05-01T12:00:00+00:00"))

    asyncio.run(scenario())

    update, insert = client.queries
    assert update.calls == [("table", "prospect_properties"), ("update", {"status": "qualified"}), ("eq", "id", "1")]
    assert insert.calls == [
        ("table", "outreach_queue"),
        (
            "insert",
            {"lead_id": "1", "channel": "whatsapp", "status": "pending", "scheduled_for": "2024-05-01T12:00:00+00:00"},
        ),
    ]


def test_client_errors_become_store_errors() -> None:
    store = _store(FakeClient(error=RuntimeError("boom")))

    with pytest.raises(StoreReadError):
        asyncio.run(store.fetch_recent())
    with pytest.raises(StoreWriteError):
        asyncio.run(store.update_status("1", ProspectStatus.CONTACTED))
    with pytest.raises(StoreWriteError):
        asyncio.run(store.enqueue_outreach(OutreachTask(lead_id="1")))


def test_subscription_streams_inserts_until_channel_error() -> None:
    client = FakeClient()
    store = _store(client)

    async def scenario():
        subscription = await store.subscribe_inserts()
        channel = client.channels[0]
        channel.insert_callback({"data": {"record": {"id": "9", "address": "Calle Nueve"}}})
        channel.insert_callback({"new": {"id": "10"}})
        channel.insert_callback({"data": {}})
        channel.state_callback("CHANNEL_ERROR", RuntimeError("socket closed"))
        received = []
        with pytest.raises(SubscriptionLost):
            async for row in subscription:
                received.append(row["id"])
        await subscription.close()
        return channel, received

    channel, received = asyncio.run(scenario())

    assert channel.name == "realtime_prospects"
    assert channel.filters == ("INSERT", "public", "prospect_properties")
    assert received == ["9", "10"]
    assert client.removed == [channel]


def test_extract_record_handles_payload_shapes() -> None:
    assert extract_record({"data": {"record": {"id": "1"}}}) == {"id": "1"}
    assert extract_record({"new": {"id": "2"}}) == {"id": "2"}
    assert extract_record({"data": {"record": {}}}) is None
