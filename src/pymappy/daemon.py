"""Mappy daemon: wires the provider, tracker, emitter, scheduler and publisher."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from collections.abc import Callable
from typing import Any

from pymappy._constants import (
    BANNER,
    STATUS_INITIALIZING,
    STATUS_INVALID_ZONE,
    STATUS_SCANNING,
    STATUS_STOPPED,
    STATUS_ZONING,
)
from pymappy._transport import Publisher
from pymappy.config import MappyConfig
from pymappy.emitter import EventEmitter
from pymappy.exceptions import ActorNotAttachedError
from pymappy.models.actor import ActorSnapshot
from pymappy.providers import ActorProvider
from pymappy.scheduler import PollScheduler, SchedulerState
from pymappy.state.decisions import Decision, DecisionKind
from pymappy.state.tracker import ZoneTracker

_logger = logging.getLogger(__name__)


class MappyDaemon:
    """Poll the local actor and stream identity, zone and position messages.

    Usage::

        async with WebSocketPublisher(config.websocket_url) as publisher:
            async with MappyDaemon(config, provider, publisher) as daemon:
                await daemon.wait()

    Parameters
    ----------
    config : MappyConfig
        Daemon configuration.
    provider : ActorProvider
        Source of actor snapshots.
    publisher : Publisher
        Outbound message channel.
    on_status : callable or None
        Invoked with the new status label whenever it changes.
    scheduler_factory : callable or None
        Builds the :class:`PollScheduler`; tests inject fake clocks here.
    """

    def __init__(
        self,
        config: MappyConfig,
        provider: ActorProvider,
        publisher: Publisher,
        *,
        on_status: Callable[[str], None] | None = None,
        scheduler_factory: Callable[..., PollScheduler] = PollScheduler,
    ) -> None:
        self._config = config
        self._provider = provider
        self._publisher = publisher
        self._on_status = on_status
        self._tracker = ZoneTracker(zone_settle_seconds=config.scheduler.zone_settle_seconds)
        self._emitter = EventEmitter(publisher)
        self._scheduler = scheduler_factory(
            config.scheduler,
            on_start=self._on_start,
            on_tick=self._on_tick,
            on_settle_tick=self._on_settle_tick,
        )
        self._status = STATUS_INITIALIZING
        self._attached: bool | None = None
        self._last_snapshot: ActorSnapshot | None = None
        self._read_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pymappy-read")
        self._pending_read: Future[ActorSnapshot] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MappyDaemon:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def status(self) -> str:
        return self._status

    @property
    def tracker(self) -> ZoneTracker:
        return self._tracker

    @property
    def emitter(self) -> EventEmitter:
        return self._emitter

    @property
    def scheduler(self) -> PollScheduler:
        return self._scheduler

    @property
    def last_snapshot(self) -> ActorSnapshot | None:
        return self._last_snapshot

    def start(self) -> None:
        """Start the scheduler. Must be called from a running loop."""
        for line in BANNER:
            _logger.info(line)
        self._set_status(STATUS_INITIALIZING)
        _logger.info("Starting memory scanner ...")
        self._scheduler.start()

    async def stop(self) -> None:
        if self._scheduler.state != SchedulerState.STOPPED:
            await self._scheduler.stop()
        self._read_executor.shutdown(wait=False, cancel_futures=True)
        self._set_status(STATUS_STOPPED)

    async def wait(self) -> None:
        """Wait until the daemon is stopped."""
        await self._scheduler.wait()

    # ------------------------------------------------------------------
    # Scheduler callbacks
    # ------------------------------------------------------------------

    async def _on_start(self) -> None:
        snapshot = await self._read()
        if snapshot is None:
            _logger.info("Character not detected yet; identity will be announced on the first successful read")
        else:
            self._emitter.announce_identity(snapshot)
        self._set_status(STATUS_SCANNING)

    async def _on_tick(self) -> None:
        snapshot = await self._read()
        if snapshot is None:
            return
        decision = self._tracker.observe(snapshot)
        # The scheduler follows the tracker before anything is sent.
        if decision.kind == DecisionKind.ZONE_CHANGED:
            self._enter_settle(decision)
        self._emitter.handle(decision, snapshot)

    async def _on_settle_tick(self) -> None:
        snapshot = await self._read()
        if snapshot is None:
            return
        decision = self._tracker.observe(snapshot)
        if decision.kind == DecisionKind.SETTLED:
            _logger.info("[Zone timeout complete :: Scanning Map ID: %s]", snapshot.zone_id)
            self._scheduler.leave_settle()
            self._set_status(STATUS_SCANNING)
        self._emitter.handle(decision, snapshot)

    def _enter_settle(self, decision: Decision) -> None:
        _logger.info(
            "[Zone change detected :: %s --> %s :: Scanning paused]",
            decision.old_zone_id,
            decision.new_zone_id,
        )
        self._scheduler.enter_settle()
        if decision.scannable:
            self._set_status(STATUS_ZONING)
        else:
            _logger.warning(
                "[Error: Zone Map ID read as 0, cannot scan this map. "
                "Scanning will resume when you zone to a non 0 ID map]"
            )
            self._set_status(STATUS_INVALID_ZONE)

    # ------------------------------------------------------------------
    # Snapshot reads
    # ------------------------------------------------------------------

    async def _read(self) -> ActorSnapshot | None:
        """Read the local actor, or ``None`` when the game is not attached.

        The read runs on a single worker thread and is bounded by the
        configured read timeout; a timeout counts as not attached. A read
        that timed out keeps its thread until the provider returns, and
        until then every tick is skipped so reads never overlap.
        """
        pending = self._pending_read
        if pending is not None and not pending.done():
            self._mark_detached(ActorNotAttachedError("Previous snapshot read still running", timed_out=True))
            return None

        future = self._read_executor.submit(self._provider.get_local_actor)
        self._pending_read = future
        try:
            snapshot = await asyncio.wait_for(asyncio.wrap_future(future), self._config.read_timeout)
        except TimeoutError:
            self._mark_detached(ActorNotAttachedError("Snapshot read timed out", timed_out=True))
            return None
        except ActorNotAttachedError as exc:
            self._mark_detached(exc)
            return None

        if self._attached is not True:
            if self._attached is False:
                _logger.info("Game process attached again")
            self._attached = True
        self._last_snapshot = snapshot
        return snapshot

    def _mark_detached(self, exc: ActorNotAttachedError) -> None:
        if self._attached is not False:
            _logger.warning("Could not read the local actor: %s", exc)
        else:
            _logger.debug("Still not attached: %s", exc)
        self._attached = False

    def _set_status(self, status: str) -> None:
        if status == self._status:
            return
        self._status = status
        _logger.debug("Status: %s", status)
        if self._on_status is not None:
            self._on_status(status)
