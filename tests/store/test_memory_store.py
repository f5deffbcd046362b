from __future__ import annotations

import asyncio

import pytest

from prospect_triage.models import OutreachTask, ProspectStatus
from prospect_triage.store import InMemoryProspectStore, QueueSubscription, StoreWriteError, SubscriptionLost


def test_fetch_recent_clamps_and_orders_by_creation() -> None:
    store = InMemoryProspectStore(
        [
            {"id": "a", "created_at": "2024-01-01T00:00:00+00:00"},
            {"id": "b", "created_at": "2024-01-03T00:00:00+00:00"},
            {"id": "c", "created_at": "2024-01-02T00:00:00+00:00"},
        ]
    )

    rows = asyncio.run(store.fetch_recent(2))

    assert [row["id"] for row in rows] == ["b", "c"]


def test_seed_file_is_loaded(tmp_path) -> None:
    seed = tmp_path / "seed.csv"
    seed.write_text("id,address\n10,Calle Diez\n", encoding="utf-8")

    store = InMemoryProspectStore(seed_path=seed)

    assert store.get_row("10")["address"] == "Calle Diez"
    assert store.get_row("10")["status"] == "new"


def test_writes_are_recorded() -> None:
    store = InMemoryProspectStore([{"id": "1"}])

    async def scenario() -> None:
        await store.update_status("1", ProspectStatus.CONTACTED)
        await store.enqueue_outreach(OutreachTask(lead_id="1"))

    asyncio.run(scenario())

    assert store.get_row("1")["status"] == "contacted"
    assert store.status_writes == [("1", "contacted")]
    assert store.outreach_tasks[0]["lead_id"] == "1"
    assert store.outreach_tasks[0]["id"]


def test_update_of_unknown_prospect_fails() -> None:
    store = InMemoryProspectStore()

    with pytest.raises(StoreWriteError):
        asyncio.run(store.update_status("missing", ProspectStatus.QUALIFIED))


def test_fail_next_rejects_unknown_operations() -> None:
    with pytest.raises(ValueError):
        InMemoryProspectStore().fail_next("delete_everything")


def test_subscription_delivers_rows_then_failure() -> None:
    store = InMemoryProspectStore()

    async def scenario():
        subscription = await store.subscribe_inserts()
        store.publish_insert({"id": "1"})
        store.publish_insert({"id": "2"})
        store.drop_subscriptions()
        received = []
        with pytest.raises(SubscriptionLost):
            async for row in subscription:
                received.append(row["id"])
        return received

    assert asyncio.run(scenario()) == ["1", "2"]


def test_closing_a_subscription_stops_iteration_and_runs_callback() -> None:
    closed: list[str] = []

    async def on_close(subscription: QueueSubscription) -> None:
        closed.append(subscription.name)

    async def scenario():
        subscription = QueueSubscription(name="test", on_close=on_close)
        subscription.push({"id": "1"})
        await subscription.close()
        await subscription.close()
        subscription.push({"id": "2"})
        return [row async for row in subscription]

    assert asyncio.run(scenario()) == [{"id": "1"}]
    assert closed == ["test"]


def test_store_close_releases_subscriptions() -> None:
    store = InMemoryProspectStore()

    async def scenario():
        await store.connect()
        subscription = await store.subscribe_inserts()
        await store.close()
        return subscription

    subscription = asyncio.run(scenario())

    assert subscription.closed
    assert store.open_subscriptions == 0
    assert not store.connected
