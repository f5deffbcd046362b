"""Prospect store backed by a hosted Supabase project."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Mapping, Optional

from supabase import AsyncClient, acreate_client

from ..config import ConfigurationError
from ..models import OutreachTask, ProspectStatus
from .base import StoreReadError, StoreWriteError, SubscriptionLost, clamp_limit
from .subscription import QueueSubscription

LOGGER = logging.getLogger(__name__)

URL_ENV_VARS = ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
KEY_ENV_VARS = ("SUPABASE_KEY", "SUPABASE_SERVICE_ROLE_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")

# Subscribe states reported by the realtime client that mean the feed is gone.
_LOST_STATES = {"CHANNEL_ERROR", "TIMED_OUT", "CLOSED"}


def _first_env(names, environ: Mapping[str, str]) -> Optional[str]:
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return None


def extract_record(payload: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Pull the inserted row out of a ``postgres_changes`` payload."""

    data = payload.get("data") if isinstance(payload.get("data"), Mapping) else payload
    for key in ("record", "new"):
        record = data.get(key)
        if isinstance(record, Mapping) and record:
            return dict(record)
    return None


class SupabaseProspectStore:
    """Reads ``prospect_properties`` and writes ``outreach_queue`` through Supabase.

    The client is created in :meth:`connect` rather than at import time, so
    credentials are validated once per store instance and nothing connects
    until the owner asks for it.
    """

    name = "supabase"

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        *,
        schema: str = "public",
        prospects_table: str = "prospect_properties",
        outreach_table: str = "outreach_queue",
        channel_name: str = "realtime_prospects",
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        environ = os.environ if environ is None else environ
        self.url = url or _first_env(URL_ENV_VARS, environ)
        self.key = key or _first_env(KEY_ENV_VARS, environ)
        self.schema = schema
        self.prospects_table = prospects_table
        self.outreach_table = outreach_table
        self.channel_name = channel_name
        self._client: Optional[AsyncClient] = None
        self._channels: Dict[QueueSubscription, Any] = {}

    # ------------------------------------------------------------------
    async def connect(self) -> None:
        if self._client is not None:
            return
        if not self.url:
            raise ConfigurationError(f"Supabase URL is missing; set one of {', '.join(URL_ENV_VARS)}")
        if not self.key:
            raise ConfigurationError(f"Supabase key is missing; set one of {', '.join(KEY_ENV_VARS)}")
        self._client = await acreate_client(self.url, self.key)
        LOGGER.info("Connected to Supabase project %s", self.url)

    async def close(self) -> None:
        for subscription in list(self._channels):
            await subscription.close()
        self._channels.clear()
        self._client = None

    @property
    def client(self) -> AsyncClient:
        if self._client is None:
            raise ConfigurationError("SupabaseProspectStore.connect() must be awaited before use")
        return self._client

    # ------------------------------------------------------------------
    async def fetch_recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        try:
            response = await (
                self.client.table(self.prospects_table)
                .select("*")
                .order("created_at", desc=True)
                .limit(clamp_limit(limit))
                .execute()
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            raise StoreReadError(f"Failed to fetch prospects from {self.prospects_table}: {exc}") from exc
        return [dict(row) for row in (response.data or [])]

    async def subscribe_inserts(self) -> QueueSubscription:
        subscription = QueueSubscription(name=self.channel_name, on_close=self._remove_channel)

        def on_insert(payload: Mapping[str, Any]) -> None:
            record = extract_record(payload)
            if record is None:
                LOGGER.warning("Ignoring insert event without a record: %s", payload)
                return
            LOGGER.debug("Received insert for prospect %s", record.get("id"))
            subscription.push(record)

        def on_state(state: Any, error: Optional[Exception] = None) -> None:
            label = str(getattr(state, "value", state)).upper()
            if label in _LOST_STATES and not subscription.closed:
                LOGGER.warning("Change feed %s reported %s: %s", self.channel_name, label, error)
                subscription.fail(SubscriptionLost(f"Change feed {self.channel_name} reported {label}"))

        try:
            channel = self.client.channel(self.channel_name)
            channel.on_postgres_changes(
                "INSERT",
                schema=self.schema,
                table=self.prospects_table,
                callback=on_insert,
            )
            await channel.subscribe(on_state)
        except ConfigurationError:
            raise
        except Exception as exc:
            raise SubscriptionLost(f"Failed to subscribe to {self.prospects_table}: {exc}") from exc

        self._channels[subscription] = channel
        return subscription

    async def update_status(self, prospect_id: str, status: ProspectStatus) -> None:
        try:
            await (
                self.client.table(self.prospects_table)
                .update({"status": ProspectStatus(status).value})
                .eq("id", prospect_id)
                .execute()
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            raise StoreWriteError(f"Failed to update status of prospect {prospect_id}: {exc}") from exc

    async def enqueue_outreach(self, task: OutreachTask) -> None:
        try:
            await self.client.table(self.outreach_table).insert(task.to_row()).execute()
        except ConfigurationError:
            raise
        except Exception as exc:
            raise StoreWriteError(f"Failed to queue outreach for prospect {task.lead_id}: {exc}") from exc

    # ------------------------------------------------------------------
    async def _remove_channel(self, subscription: QueueSubscription) -> None:
        channel = self._channels.pop(subscription, None)
        if channel is None or self._client is None:
            return
        try:
            await self._client.remove_channel(channel)
        except Exception:  # pragma: no cover - best effort cleanup
            LOGGER.exception("Failed to remove realtime channel %s", self.channel_name)


__all__ = ["SupabaseProspectStore", "extract_record"]
