"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Mount/unmount lifecycle shared by every portal screen.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..datasets.queries import DatasetQuery
from ..errors import MutationError
from ..mutations.invalidator import MutationOperation
from ..polling import OPERATIONAL
from ..query.observer import QueryObserver
from ..query.options import QueryOptions
from ..realtime.bridge import RealtimeBridge
from ..types import Row

if TYPE_CHECKING:
    from ..app import PortalRuntime

logger = logging.getLogger("labsync.views")

RenderCallback = Callable[["View", QueryObserver], None]


class View:
    """
    Base portal screen.

    Subclasses declare their queries, realtime tables and poll timers in
    ``setup()``. Everything acquired there is released by ``unmount()``,
    which runs at most once per ``mount()``.
    """

    name = "view"

    def __init__(
        self,
        runtime: "PortalRuntime",
        *,
        on_render: RenderCallback | None = None,
    ) -> None:
        self.runtime = runtime
        self._on_render = on_render
        self._observers: dict[str, QueryObserver] = {}
        self._bridges: list[RealtimeBridge] = []
        self._poll_leases: list[str] = []
        self._mounted = False
        self.renders = 0

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def observers(self) -> dict[str, QueryObserver]:
        return dict(self._observers)

    def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        logger.debug("Mounting %s", self.name)
        try:
            self.setup()
        except Exception:
            self.unmount()
            raise

    def unmount(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        for observer in self._observers.values():
            observer.unmount()
        self._observers.clear()
        for bridge in self._bridges:
            bridge.disconnect()
        self._bridges.clear()
        for name in self._poll_leases:
            self.runtime.polls.release(name)
        self._poll_leases.clear()
        logger.debug("Unmounted %s", self.name)

    def setup(self) -> None:
        """Acquire queries, realtime channels and timers."""

    # ------------------------------------------------------------------
    # Resource helpers for setup()
    # ------------------------------------------------------------------

    def use(
        self,
        slot: str,
        query: DatasetQuery,
        options: QueryOptions | None = None,
    ) -> QueryObserver:
        """Mount `query` under `slot`, replacing whatever was there."""
        previous = self._observers.pop(slot, None)
        if previous is not None:
            previous.unmount()
        observer = self.runtime.client.use_query(
            query.key,
            query.fetch,
            options or self.runtime.query_options,
            on_change=self._render,
        )
        self._observers[slot] = observer
        return observer

    def listen(self, table: str, *, channel_name: str | None = None) -> RealtimeBridge:
        bridge = RealtimeBridge(
            self.runtime.transport,
            self.runtime.bus,
            table=table,
            channel_name=channel_name,
        )
        self._bridges.append(bridge)
        bridge.connect()
        return bridge

    def poll(self, name: str) -> None:
        self.runtime.polls.acquire(name)
        self._poll_leases.append(name)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def observer(self, slot: str) -> QueryObserver:
        try:
            return self._observers[slot]
        except KeyError as exc:
            raise KeyError(f"{self.name} has no query '{slot}' (mounted={self._mounted})") from exc

    def data(self, slot: str, default: Any = None) -> Any:
        observer = self._observers.get(slot)
        if observer is None or observer.data is None:
            return default
        return observer.data

    @property
    def is_loading(self) -> bool:
        return any(o.status == "loading" and o.data is None for o in self._observers.values())

    @property
    def errors(self) -> dict[str, BaseException]:
        return {
            slot: o.error
            for slot, o in self._observers.items()
            if o.status == "error" and o.error is not None
        }

    def refresh(self) -> list[asyncio.Task[Any]]:
        """Force every query of this view to refetch."""
        tasks: list[asyncio.Task[Any]] = []
        for observer in self._observers.values():
            task = observer.refetch()
            if task is not None:
                tasks.append(task)
        return tasks

    async def settle(self) -> None:
        """Wait until no query of this view has a fetch in flight."""
        while True:
            await asyncio.sleep(0)
            pending = [o for o in self._observers.values() if o.is_fetching]
            if not pending:
                return
            for observer in pending:
                await observer.wait()

    def _render(self, observer: QueryObserver) -> None:
        self.renders += 1
        if self._on_render is not None:
            self._on_render(self, observer)


class AdminDatasetView(View):
    """
    Admin table over one store table, with create/update/delete support.

    Every admin table holds the operational poll lease, so rows stay fresh
    even while a realtime channel is down. A successful write publishes
    invalidation for every dataset derived from the table; a failed one is
    reported to this view only.
    """

    table = ""
    realtime = False
    channel_name: str | None = None

    def setup(self) -> None:
        self.use("rows", self.build_query())
        if self.realtime:
            self.listen(self.table, channel_name=self.channel_name)
        self.poll(OPERATIONAL)

    def build_query(self) -> DatasetQuery:
        raise NotImplementedError

    @property
    def rows(self) -> list[Any]:
        return self.data("rows", [])

    async def create(self, values: Row) -> Row:
        """
        Insert one row (the admin entry form's submit).

        Raises:
            MutationError: If the store rejected the insert.
        """
        result = await self._mutate(
            "insert",
            lambda: self.runtime.store.insert(self.table, values),
            success="Record added successfully",
            failure="Failed to add record",
        )
        return (result.data or [{}])[0]

    async def update(self, record_id: str, values: Row) -> None:
        """
        Update one row by id.

        Raises:
            MutationError: If the store rejected the update.
        """
        await self._mutate(
            "update",
            lambda: self.runtime.store.update(self.table, values, match={"id": record_id}),
            success="Record updated successfully",
            failure="Failed to update record",
        )

    async def delete(self, record_id: str) -> None:
        """
        Delete one row by id.

        Raises:
            MutationError: If the store rejected the delete.
        """
        await self._mutate(
            "delete",
            lambda: self.runtime.store.delete(self.table, match={"id": record_id}),
            success="Record deleted successfully",
            failure="Failed to delete record",
        )

    async def _mutate(
        self,
        operation: MutationOperation,
        request: Callable[[], Any],
        *,
        success: str | None,
        failure: str,
        message: str = "",
        table: str | None = None,
    ) -> Any:
        # success=None leaves the toast to the caller (multi-step writes).
        target = table or self.table
        notifier = self.runtime.notifier
        try:
            result = await self.runtime.invalidator.run(target, operation, request)
        except MutationError as exc:
            notifier.error(failure, str(exc), source_label=target)
            raise
        if success is not None:
            notifier.success(success, message, source_label=target)
        return result
