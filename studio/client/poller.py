"""
Client Job Poller
Watches one job at a time until it finishes, with a degraded fallback that
watches the owning entity when the job itself cannot be observed.

    IDLE -> POLLING -> SUCCEEDED | FAILED | TIMED_OUT
    TIMED_OUT -> SUCCEEDED | FAILED         (final status check)
    TIMED_OUT -> FALLBACK_REFRESH -> RESOLVED | GAVE_UP

Reads back off exponentially from ``interval`` up to ``max_interval``.
Only the watch that currently owns the slot may move the state or fire
callbacks; a watch stopped or replaced from one of its own callbacks ends
quietly. Stopping a poller only stops watching; it never cancels the job on
the server.
"""

import asyncio
import inspect
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from studio.core.config import settings

logger = logging.getLogger(__name__)

Job = Dict[str, Any]

# Errors that mean "could not observe", as opposed to bugs in the callbacks
TRANSPORT_ERRORS = (httpx.HTTPError, OSError, asyncio.TimeoutError)

TERMINAL_STATUSES = ("succeeded", "failed")


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    FALLBACK_REFRESH = "fallback_refresh"
    RESOLVED = "resolved"
    GAVE_UP = "gave_up"


TRANSITIONS = {
    PollState.IDLE: {PollState.POLLING},
    PollState.POLLING: {PollState.SUCCEEDED, PollState.FAILED, PollState.TIMED_OUT},
    PollState.TIMED_OUT: {PollState.SUCCEEDED, PollState.FAILED, PollState.FALLBACK_REFRESH},
    PollState.FALLBACK_REFRESH: {PollState.RESOLVED, PollState.GAVE_UP},
    PollState.SUCCEEDED: set(),
    PollState.FAILED: set(),
    PollState.RESOLVED: set(),
    PollState.GAVE_UP: set(),
}


async def _call(callback: Optional[Callable], *args):
    """Invoke a sync or async callback."""
    if callback is None:
        return None
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class JobPoller:
    """
    One polling slot. At most one job is watched at a time.

    Args:
        fetch_job: async (job_id) -> job dict; must bypass caches
        fetch_entity: async () -> owning entity, read during fallback
        is_entity_complete: (entity) -> bool, evidence the job's effect landed
        on_update: called with every job read, before the terminal check
        on_complete: called once with the terminal job
        on_settled: called once with (job_id, RESOLVED | GAVE_UP)
    """

    def __init__(
        self,
        fetch_job: Callable[[str], Awaitable[Job]],
        fetch_entity: Optional[Callable[[], Awaitable[Any]]] = None,
        is_entity_complete: Optional[Callable[[Any], bool]] = None,
        on_update: Optional[Callable[[Job], Any]] = None,
        on_complete: Optional[Callable[[Job], Any]] = None,
        on_settled: Optional[Callable[[str, PollState], Any]] = None,
        interval: Optional[float] = None,
        max_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        fallback_interval: Optional[float] = None,
        fallback_timeout: Optional[float] = None,
    ):
        self.fetch_job = fetch_job
        self.fetch_entity = fetch_entity
        self.is_entity_complete = is_entity_complete
        self.on_update = on_update
        self.on_complete = on_complete
        self.on_settled = on_settled
        self.interval = interval if interval is not None else settings.POLL_INTERVAL
        self.max_interval = max_interval if max_interval is not None else settings.POLL_MAX_INTERVAL
        self.timeout = timeout if timeout is not None else settings.POLL_TIMEOUT
        self.fallback_interval = fallback_interval if fallback_interval is not None else settings.FALLBACK_INTERVAL
        self.fallback_timeout = fallback_timeout if fallback_timeout is not None else settings.FALLBACK_TIMEOUT

        self.state = PollState.IDLE
        self.job_id: Optional[str] = None
        self.last_job: Optional[Job] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def _owns(self) -> bool:
        """True while the running watch still owns this slot."""
        return self._task is not None and self._task is asyncio.current_task()

    def _transition(self, new_state: PollState):
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid poll transition {self.state.value} -> {new_state.value}")
        logger.debug(f"[Poller] {self.job_id}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def start_polling(self, job_id: str) -> None:
        """
        Start watching ``job_id``. A no-op while that same job is being watched;
        any other watch is stopped first. Must be called from a running event loop.
        """
        if self.is_polling and self.job_id == job_id:
            return
        self.stop_polling()

        self.job_id = job_id
        self.last_job = None
        self._transition(PollState.POLLING)
        self._task = asyncio.get_running_loop().create_task(self._run(job_id))

    def stop_polling(self) -> None:
        """Stop watching locally. Callbacks of the stopped watch never fire afterwards."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info(f"[Poller] Stopped watching {self.job_id}")
        self._task = None
        self.state = PollState.IDLE

    async def wait(self) -> PollState:
        """
        Wait for the current watch to settle and return its final state.
        An exception raised by a callback propagates from here.
        """
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        return self.state

    async def _run(self, job_id: str):
        try:
            await self._watch(job_id)
        except Exception:
            if self._owns():
                logger.exception(f"[Poller] Watch of {job_id} crashed")
                self.state = PollState.IDLE
            raise

    async def _read(self, job_id: str, timeout: float) -> Optional[Job]:
        """One job read plus on_update. None when the read failed or the watch lost the slot."""
        try:
            job = await asyncio.wait_for(self.fetch_job(job_id), timeout=timeout)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[Poller] Could not read {job_id}: {e!r}")
            return None
        if not self._owns():
            return None

        self.last_job = job
        await _call(self.on_update, job)
        return job

    async def _finish(self, job: Job):
        self._transition(PollState.SUCCEEDED if job.get("status") == "succeeded" else PollState.FAILED)
        await _call(self.on_complete, job)

    async def _watch(self, job_id: str):
        deadline = time.monotonic() + self.timeout
        delay = self.interval

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"[Poller] {job_id} still running after {self.timeout:.0f}s")
                break
            job = await self._read(job_id, remaining)
            if not self._owns():
                return
            if job is None:
                break
            if job.get("status") in TERMINAL_STATUSES:
                await self._finish(job)
                return

            await asyncio.sleep(min(delay, max(deadline - time.monotonic(), 0)))
            delay = min(delay * 2, self.max_interval)

        self._transition(PollState.TIMED_OUT)

        # Final status check before degrading
        job = await self._read(job_id, self.max_interval)
        if not self._owns():
            return
        if job is not None and job.get("status") in TERMINAL_STATUSES:
            logger.info(f"[Poller] {job_id} finished at the deadline")
            await self._finish(job)
            return

        await self._fallback(job_id)

    async def _fallback(self, job_id: str):
        self._transition(PollState.FALLBACK_REFRESH)
        deadline = time.monotonic() + self.fallback_timeout

        if self.fetch_entity is not None and self.is_entity_complete is not None:
            while time.monotonic() < deadline:
                try:
                    entity = await self.fetch_entity()
                except TRANSPORT_ERRORS as e:
                    logger.warning(f"[Poller] Fallback refresh for {job_id} failed: {e!r}")
                else:
                    if not self._owns():
                        return
                    if self.is_entity_complete(entity):
                        self._transition(PollState.RESOLVED)
                        logger.info(f"[Poller] {job_id} resolved from entity state")
                        await _call(self.on_settled, job_id, PollState.RESOLVED)
                        return
                await asyncio.sleep(min(self.fallback_interval, max(deadline - time.monotonic(), 0)))

        if not self._owns():
            return
        self._transition(PollState.GAVE_UP)
        logger.warning(f"[Poller] Gave up on {job_id}")
        await _call(self.on_settled, job_id, PollState.GAVE_UP)
