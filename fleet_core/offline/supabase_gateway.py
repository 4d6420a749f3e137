# =============================================================================
# fleet_core/offline/supabase_gateway.py
# Supabase implementation of the Remote Data Gateway
# =============================================================================
"""
SupabaseGateway - RemoteGateway backed by supabase-py.

Table operations and storage go through the synchronous client. Realtime
change streams need the async client, so subscriptions run on a daemon
thread that owns its own event loop; callbacks fire on that thread.

Error classification happens here and nowhere else:
- httpx timeouts                        -> GatewayErrorKind.TIMEOUT
- httpx transport errors / OSError      -> GatewayErrorKind.NETWORK
- HTTP 431 on any request               -> SessionCorruptedError
- HTTP 400 "Bad Request" on a bulk fetch -> SessionCorruptedError
- any other remote error                -> GatewayErrorKind.REJECTED
"""

from __future__ import annotations
import asyncio
import threading
from typing import Any, Callable, Dict, List, Optional
import logging

import httpx
from postgrest.exceptions import APIError
from supabase import Client, acreate_client, create_client

from fleet_core.errors import GatewayError, GatewayErrorKind, SessionCorruptedError
from fleet_core.offline.gateway import RemoteGateway, Row, RowCallback, Subscription

logger = logging.getLogger(__name__)

HEADER_TOO_LARGE = "431"
BAD_REQUEST = "400"


def _status_of(error: Exception) -> Optional[str]:
    if isinstance(error, APIError):
        return str(error.code) if error.code is not None else None
    if isinstance(error, httpx.HTTPStatusError):
        return str(error.response.status_code)
    return None


def _message_of(error: Exception) -> str:
    if isinstance(error, APIError):
        parts = [error.message, error.details, error.hint]
        return " | ".join(str(p) for p in parts if p) or "Remote store error"
    return str(error) or error.__class__.__name__


def classify_error(
    error: Exception,
    table: Optional[str] = None,
    operation: Optional[str] = None,
    bulk: bool = False,
) -> GatewayError:
    """Translate a client exception into the gateway's typed errors."""
    if isinstance(error, GatewayError):
        return error

    status = _status_of(error)
    message = _message_of(error)
    context = {"table": table, "operation": operation, "status": status}

    if status == HEADER_TOO_LARGE:
        return SessionCorruptedError(f"Request header too large: {message}", **context)
    if bulk and status == BAD_REQUEST and "bad request" in message.lower():
        return SessionCorruptedError(f"Malformed bulk request: {message}", **context)

    if isinstance(error, httpx.TimeoutException):
        kind = GatewayErrorKind.TIMEOUT
    elif isinstance(error, (httpx.TransportError, OSError)):
        kind = GatewayErrorKind.NETWORK
    else:
        kind = GatewayErrorKind.REJECTED

    return GatewayError(message, kind=kind, **context)


def extract_record(payload: Any) -> Row:
    """Pull the inserted row out of a realtime postgres_changes payload."""
    if not isinstance(payload, dict):
        return {}
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("record"), dict):
        return data["record"]
    for key in ("new", "record"):
        if isinstance(payload.get(key), dict):
            return payload[key]
    return {}


class _ChannelSubscription(Subscription):
    def __init__(self, bridge: _RealtimeBridge, channel: Any, name: str):
        self._bridge = bridge
        self._channel = channel
        self.name = name
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._bridge.remove(self._channel, self.name)


class _RealtimeBridge:
    """Runs the async Supabase client on a private event loop thread."""

    SUBSCRIBE_TIMEOUT = 10

    def __init__(self, url: str, key: str):
        self.url = url
        self.key = key
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._client = None
        self._lock = threading.Lock()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._thread is None or not self._thread.is_alive():
                self._loop = asyncio.new_event_loop()
                self._thread = threading.Thread(
                    target=self._loop.run_forever,
                    daemon=True,
                    name="SupabaseRealtime",
                )
                self._thread.start()
        return self._loop

    def _run(self, coro, timeout: Optional[float] = None):
        loop = self._ensure_loop()
        return asyncio.run_coroutine_threadsafe(coro, loop).result(timeout)

    async def _get_client(self):
        if self._client is None:
            self._client = await acreate_client(self.url, self.key)
        return self._client

    async def _subscribe(self, name: str, table: str, event: str, callback: RowCallback):
        client = await self._get_client()
        channel = client.channel(name)

        def on_change(payload):
            record = extract_record(payload)
            if record:
                callback(record)
            else:
                logger.warning(f"Realtime payload without record on {table}: {payload}")

        channel.on_postgres_changes(event=event, callback=on_change, table=table, schema="public")
        await channel.subscribe()
        return channel

    async def _remove(self, channel):
        if self._client is not None:
            await self._client.remove_channel(channel)

    def subscribe(self, table: str, event: str, callback: RowCallback) -> Subscription:
        name = f"{table}-{event.lower()}-changes"
        channel = self._run(self._subscribe(name, table, event, callback), self.SUBSCRIBE_TIMEOUT)
        logger.info(f"Realtime subscribed: {name}")
        return _ChannelSubscription(self, channel, name)

    def remove(self, channel: Any, name: str) -> None:
        try:
            self._run(self._remove(channel), self.SUBSCRIBE_TIMEOUT)
            logger.info(f"Realtime unsubscribed: {name}")
        except Exception as e:
            logger.warning(f"Error removing realtime channel {name}: {e}")

    def stop(self) -> None:
        with self._lock:
            if self._loop is not None and self._loop.is_running():
                self._loop.call_soon_threadsafe(self._loop.stop)
            if self._thread is not None:
                self._thread.join(timeout=5)
            self._thread = None
            self._loop = None
            self._client = None


class SupabaseGateway(RemoteGateway):
    """
    Gateway over a Supabase project.

    Usage:
        gateway = SupabaseGateway.from_config(config)
        rows = gateway.select("work_orders", order_by="created_at", descending=True)
    """

    def __init__(
        self,
        url: str,
        key: str,
        bucket: str = "images",
        client: Optional[Client] = None,
    ):
        self.url = url
        self.key = key
        self.bucket = bucket
        self.client: Client = client if client is not None else create_client(url, key)
        self._realtime = _RealtimeBridge(url, key)

    @classmethod
    def from_config(cls, config) -> SupabaseGateway:
        return cls(config.supabase_url, config.supabase_key, bucket=config.storage_bucket)

    def _call(self, table: Optional[str], operation: str, func: Callable[[], Any], bulk: bool = False):
        try:
            return func()
        except Exception as e:
            error = classify_error(e, table=table, operation=operation, bulk=bulk)
            logger.warning(f"Supabase {operation} failed on {table}: {error}")
            raise error from e

    # =========================================================================
    # TABLE OPERATIONS
    # =========================================================================

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        bulk: bool = False,
    ) -> List[Row]:
        def run():
            query = self.client.table(table).select("*")
            for col, val in (filters or {}).items():
                query = query.eq(col, val)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            return query.execute().data or []

        return self._call(table, "select", run, bulk=bulk)

    def insert(self, table: str, row: Row) -> Row:
        def run():
            data = self.client.table(table).insert(row).execute().data
            if not data:
                raise GatewayError(
                    "Insert returned no row",
                    kind=GatewayErrorKind.REJECTED,
                    table=table,
                    operation="insert",
                )
            return data[0]

        return self._call(table, "insert", run)

    def update(self, table: str, record_id: Any, fields: Row, id_field: str = "id") -> Optional[Row]:
        def run():
            data = self.client.table(table).update(fields).eq(id_field, record_id).execute().data
            return data[0] if data else None

        return self._call(table, "update", run)

    def delete(self, table: str, record_id: Any, id_field: str = "id") -> None:
        def run():
            self.client.table(table).delete().eq(id_field, record_id).execute()

        self._call(table, "delete", run)

    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._call(None, f"rpc:{function}", lambda: self.client.rpc(function, params or {}).execute().data)

    # =========================================================================
    # STORAGE
    # =========================================================================

    def upload(self, path: str, content: bytes, content_type: str, upsert: bool = True) -> None:
        def run():
            self.client.storage.from_(self.bucket).upload(
                path=path,
                file=content,
                file_options={"content-type": content_type, "upsert": "true" if upsert else "false"},
            )

        self._call(self.bucket, "upload", run)

    def public_url(self, path: str) -> str:
        return self._call(
            self.bucket,
            "public_url",
            lambda: self.client.storage.from_(self.bucket).get_public_url(path),
        )

    # =========================================================================
    # REALTIME
    # =========================================================================

    def subscribe(self, table: str, event: str, callback: RowCallback) -> Subscription:
        return self._call(table, "subscribe", lambda: self._realtime.subscribe(table, event, callback))

    def close(self) -> None:
        self._realtime.stop()
