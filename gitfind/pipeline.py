"""Discovery and ingestion pipeline.

Three stages run as concurrent tasks:

* locals: probe and inspect every candidate directory from the walker and
  forward newly seen remote addresses;
* remotes: inspect each distinct remote address;
* storage: persist every view produced by the two stages above.

Both producer stages feed the storage stage through one channel. The storage
loop ends only when every sender handle has been released, including the one
held by :meth:`FindPipeline.run` until both producers are done.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Coroutine, Iterable, Optional, Protocol, Set, Tuple

from .channel import Channel, Receiver, Sender
from .dedup import DedupSet
from .git.inspector import InspectionError
from .logging import get_logger
from .models import FsLocation, Location, NetLocation, RepoFacts, View
from .stores.views import StoreError


class Inspector(Protocol):
    async def is_repo(self, directory: Path) -> bool: ...

    async def inspect(self, location: Location) -> RepoFacts: ...


class ViewSink(Protocol):
    def upsert(self, view: View) -> Optional[int]: ...


@dataclass(frozen=True)
class FindSummary:
    """Final counts reported by a pipeline run."""

    locals: int
    remotes_ok: int
    remotes_err: int
    stored: int
    store_failures: int


class FindPipeline:
    """Coordinates the locals, remotes and storage stages for one run."""

    def __init__(
        self,
        inspector: Inspector,
        sink: ViewSink,
        host: str,
        *,
        local_limit: int | None = None,
        remote_limit: int | None = None,
    ) -> None:
        if local_limit is not None and local_limit < 1:
            raise ValueError("local_limit must be a positive integer or None")
        if remote_limit is not None and remote_limit < 1:
            raise ValueError("remote_limit must be a positive integer or None")
        self.inspector = inspector
        self.sink = sink
        self.host = host
        self.local_limit = local_limit
        self.remote_limit = remote_limit
        self.logger = get_logger("pipeline")
        self._reset_seen()

    def _reset_seen(self) -> None:
        # Dedup state is per run.
        self.locals_seen: DedupSet[Location] = DedupSet("locals")
        self.addresses_seen: DedupSet[str] = DedupSet("addresses")
        self.remotes_ok: DedupSet[str] = DedupSet("remotes-ok")
        self.remotes_err: DedupSet[str] = DedupSet("remotes-err")

    async def run(self, candidates: Iterable[Path]) -> FindSummary:
        """Run all stages over ``candidates`` and return the final counts."""
        self._reset_seen()
        views: Channel[View] = Channel("views")
        addresses: Channel[str] = Channel("addresses")

        views_tx = views.sender()
        storage = asyncio.create_task(self._storage_stage(views.receiver()), name="gitfind-storage")
        remotes = asyncio.create_task(
            self._remotes_stage(addresses.receiver(), views_tx.clone()),
            name="gitfind-remotes",
        )
        locals_ = asyncio.create_task(
            self._locals_stage(candidates, addresses.sender(), views_tx.clone()),
            name="gitfind-locals",
        )

        try:
            await locals_
            await remotes
        finally:
            # The storage loop cannot finish while this handle is held.
            views_tx.close()
        stored, failures = await storage

        summary = FindSummary(
            locals=len(self.locals_seen),
            remotes_ok=len(self.remotes_ok),
            remotes_err=len(self.remotes_err),
            stored=stored,
            store_failures=failures,
        )
        self.logger.info(
            "Found %d local repositories, %d remotes ok, %d remotes failed (%d views stored, %d store failures)",
            summary.locals,
            summary.remotes_ok,
            summary.remotes_err,
            summary.stored,
            summary.store_failures,
        )
        return summary

    # ------------------------------------------------------------------
    # Stages

    async def _locals_stage(
        self,
        candidates: Iterable[Path],
        addresses_tx: Sender[str],
        views_tx: Sender[View],
    ) -> None:
        slots = _slots(self.local_limit)
        tasks: Set[asyncio.Task[None]] = set()
        with addresses_tx, views_tx:
            for directory in candidates:
                if slots is not None:
                    await slots.acquire()
                work = self._inspect_local(directory, addresses_tx, views_tx)
                _spawn(tasks, self._guarded(work, directory, slots))
                # The walker blocks; let inspections progress between candidates.
                await asyncio.sleep(0)
            await asyncio.gather(*tasks)

    async def _remotes_stage(self, addresses_rx: Receiver[str], views_tx: Sender[View]) -> None:
        slots = _slots(self.remote_limit)
        tasks: Set[asyncio.Task[None]] = set()
        with views_tx:
            async for address in addresses_rx:
                if slots is not None:
                    await slots.acquire()
                _spawn(tasks, self._guarded(self._inspect_remote(address, views_tx), address, slots))
            await asyncio.gather(*tasks)

    async def _storage_stage(self, views_rx: Receiver[View]) -> Tuple[int, int]:
        stored = 0
        failures = 0
        async for view in views_rx:
            try:
                row_id = self.sink.upsert(view)
            except StoreError as exc:
                failures += 1
                self.logger.error("Failed to store view for %s: %s", view.location, exc)
                continue
            except Exception as exc:
                failures += 1
                self.logger.error("Unexpected failure while storing view for %s: %s", view.location, exc)
                continue
            stored += 1
            self.logger.debug("Stored view for %s (row %s, ok=%s)", view.location, row_id, view.ok)
        return stored, failures

    # ------------------------------------------------------------------
    # Per-item work

    async def _inspect_local(
        self,
        directory: Path,
        addresses_tx: Sender[str],
        views_tx: Sender[View],
    ) -> None:
        if not await self.inspector.is_repo(directory):
            self.logger.debug("Skipping %s: not a repository", directory)
            return
        location = FsLocation(directory)
        facts = await self._facts(location)
        views_tx.send(View(host=self.host, location=location, facts=facts))
        self.locals_seen.insert(location)
        if facts is None:
            return
        for address in facts.remotes.values():
            if self.addresses_seen.insert(address):
                addresses_tx.send(address)

    async def _inspect_remote(self, address: str, views_tx: Sender[View]) -> None:
        location = NetLocation(address)
        facts = await self._facts(location)
        if facts is None:
            self.remotes_err.insert(address)
        else:
            self.remotes_ok.insert(address)
        views_tx.send(View(host=self.host, location=location, facts=facts))

    async def _facts(self, location: Location) -> Optional[RepoFacts]:
        try:
            return await self.inspector.inspect(location)
        except InspectionError as exc:
            self.logger.warning("Inspection failed for %s: %s", location, exc)
            return None

    async def _guarded(
        self, work: Awaitable[None], item: object, slots: Optional[asyncio.Semaphore]
    ) -> None:
        try:
            await work
        except Exception as exc:
            self.logger.error("Unexpected failure while processing %s: %s", item, exc)
        finally:
            if slots is not None:
                slots.release()


def _slots(limit: int | None) -> Optional[asyncio.Semaphore]:
    return asyncio.Semaphore(limit) if limit is not None else None


def _spawn(tasks: Set[asyncio.Task[None]], work: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
    """Start ``work`` and track it in ``tasks`` until it finishes."""
    task = asyncio.create_task(work)
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return task


__all__ = ["FindPipeline", "FindSummary", "Inspector", "ViewSink"]
