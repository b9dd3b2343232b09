# services/change_feed.py
import asyncio
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from supabase import acreate_client

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ALL_EVENTS: FrozenSet[str] = frozenset({INSERT, UPDATE, DELETE})


@dataclass(frozen=True)
class ChangeEvent:
    """
    "Something changed" token. Carries no row data: subscribers re-run
    their own query.
    """
    table: str
    change_kind: str


Subscriber = Callable[[ChangeEvent], None]


class ChangeBus:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Tuple[FrozenSet[str], Subscriber]]] = defaultdict(list)
        self._versions: Dict[str, int] = defaultdict(int)

    def subscribe(
            self,
            table: str,
            callback: Subscriber,
            events: Iterable[str] = ALL_EVENTS,
    ) -> Callable[[], None]:
        """
        Register `callback` for changes on `table`. Returns an unsubscribe function.
        """
        entry = (frozenset(e.upper() for e in events), callback)
        with self._lock:
            self._subscribers[table].append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers[table]:
                    self._subscribers[table].remove(entry)

        return unsubscribe

    def publish(self, table: str, change_kind: str) -> None:
        event = ChangeEvent(table=table, change_kind=change_kind.upper())
        with self._lock:
            self._versions[table] += 1
            targets = [
                cb for mask, cb in self._subscribers[table]
                if event.change_kind == "*" or event.change_kind in mask
            ]

        for callback in targets:
            try:
                callback(event)
            except Exception:
                logger.exception("Change subscriber failed for %s %s", table, event.change_kind)

    def version(self, *tables: str) -> int:
        with self._lock:
            return sum(self._versions[table] for table in tables)


class RealtimeBridge:
    """
    Forward Supabase realtime `postgres_changes` into a ChangeBus.
    Runs its own event loop on a daemon thread.
    """

    def __init__(
            self,
            url: str,
            key: str,
            bus: ChangeBus,
            tables: Iterable[str],
            schema: str = "public",
            channel_name: str = "pos-orders",
    ):
        self.url = url
        self.key = key
        self.bus = bus
        self.tables = tuple(tables)
        self.schema = schema
        self.channel_name = channel_name
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopped: Optional[asyncio.Event] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="realtime-bridge", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._loop and self._stopped:
            self._loop.call_soon_threadsafe(self._stopped.set)

    def _run(self) -> None:
        try:
            asyncio.run(self._listen())
        except Exception:
            logger.exception("Realtime bridge stopped")

    async def _listen(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._stopped = asyncio.Event()

        client = await acreate_client(self.url, self.key)
        channel = client.channel(self.channel_name)
        for table in self.tables:
            channel.on_postgres_changes(
                "*",
                schema=self.schema,
                table=table,
                callback=partial(self._forward, table),
            )
        await channel.subscribe()
        logger.info("Realtime bridge subscribed to %s", ", ".join(self.tables))

        await self._stopped.wait()
        await client.remove_channel(channel)

    def _forward(self, table: str, payload) -> None:
        self.bus.publish(table, realtime_change_kind(payload))


def realtime_change_kind(payload) -> str:
    """
    Pull the event type out of a realtime payload; "*" when it is not present.
    """
    if not isinstance(payload, dict):
        return "*"
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    kind = data.get("type") or data.get("eventType") or "*"
    return str(kind).upper()
