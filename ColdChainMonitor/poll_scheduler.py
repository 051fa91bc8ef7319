"""Poll scheduler - drives refresh cycles on a fixed cadence."""
import asyncio
import logging
from enum import Enum
from typing import Optional, Set

from refresh_coordinator import RefreshCoordinator

DEFAULT_POLL_INTERVAL = 5.0


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUSPENDED = "suspended"


class PollScheduler:
    """
    Triggers RefreshCoordinator.refresh_all() every `interval` seconds.

    Driven by two external signals: timer ticks and visibility changes.
    Hiding the consumer suspends polling; showing it again resumes with an
    immediate refresh instead of replaying missed ticks. Must be used from
    within a running event loop.
    """

    def __init__(self, coordinator: RefreshCoordinator, interval: float = DEFAULT_POLL_INTERVAL):
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        self.coordinator = coordinator
        self.interval = interval
        self.state = SchedulerState.IDLE

        self._timer: Optional[asyncio.Task] = None
        self._cycles: Set[asyncio.Task] = set()

    def start(self) -> None:
        """Start polling: refresh immediately, then on every interval."""
        if self.state is SchedulerState.RUNNING:
            logging.debug("Scheduler already running")
            return
        # Raises RuntimeError outside an event loop, before any state changes
        loop = asyncio.get_running_loop()
        logging.info(f"Polling started (interval={self.interval}s)")
        self.state = SchedulerState.RUNNING
        self._spawn_refresh()
        self._timer = loop.create_task(self._run_timer())

    def stop(self) -> None:
        """Stop future ticks. A refresh already in flight runs to completion."""
        self._cancel_timer()
        if self.state is not SchedulerState.IDLE:
            logging.info("Polling stopped")
        self.state = SchedulerState.IDLE

    def set_visibility(self, visible: bool) -> None:
        if not visible and self.state is SchedulerState.RUNNING:
            logging.info("Consumer hidden, suspending polling")
            self._cancel_timer()
            self.state = SchedulerState.SUSPENDED
        elif visible and self.state is SchedulerState.SUSPENDED:
            logging.info("Consumer visible, resuming polling")
            self.start()

    def tick(self) -> None:
        """Handle one timer tick; ignored unless running."""
        if self.state is SchedulerState.RUNNING:
            self._spawn_refresh()

    async def drain(self) -> None:
        """Wait for refresh cycles that were already started."""
        if self._cycles:
            await asyncio.gather(*list(self._cycles), return_exceptions=True)

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    def _spawn_refresh(self) -> None:
        task = asyncio.get_running_loop().create_task(self.coordinator.refresh_all())
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
