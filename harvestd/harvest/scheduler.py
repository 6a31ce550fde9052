"""Fixed-delay poll scheduling, one loop thread per harvester."""

from __future__ import annotations

import logging
import threading

from harvestd.errors import HarvestError
from harvestd.harvest.harvester import Harvester, PollResult

logger = logging.getLogger(__name__)


class _PollJob(threading.Thread):
    """Loop thread polling one harvester until stopped."""

    def __init__(self, harvester: Harvester, interval: float) -> None:
        super().__init__(name=f"harvestd-poll-{harvester.id}", daemon=True)
        self.harvester = harvester
        self.interval = interval
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.is_set():
            PollingScheduler.run_once(self.harvester)
            # Fixed delay between the end of one poll and the start of the next.
            self._stop_event.wait(self.interval)

    def stop(self) -> None:
        self._stop_event.set()


class PollingScheduler:
    """Drives ``Harvester.poll()`` on a fixed interval.

    A slow poll delays the next one instead of queuing overlapping runs.
    Failures are logged and retried on the next interval.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, _PollJob] = {}

    def schedule(self, harvester: Harvester, interval: float | None = None) -> None:
        """Start polling ``harvester`` every ``interval`` seconds."""
        delay = interval if interval is not None else harvester.config.poll_interval_seconds
        if delay <= 0:
            raise ValueError("Poll interval must be positive.")

        with self._lock:
            if harvester.id in self._jobs:
                raise ValueError(f"Harvester [{harvester.id}] is already scheduled.")
            job = _PollJob(harvester, delay)
            self._jobs[harvester.id] = job
        job.start()
        logger.info("Scheduled harvester [%s] every %.1fs", harvester.id, delay)

    def cancel(self, harvester_id: str, *, wait: bool = True) -> None:
        """Stop polling ``harvester_id``; with ``wait`` the in-flight poll completes first."""
        with self._lock:
            job = self._jobs.pop(harvester_id, None)
        if job is None:
            return
        job.stop()
        if wait and job is not threading.current_thread():
            job.join()

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            harvester_ids = list(self._jobs)
        for harvester_id in harvester_ids:
            self.cancel(harvester_id, wait=wait)

    def scheduled(self) -> list[str]:
        with self._lock:
            return sorted(self._jobs)

    @staticmethod
    def run_once(harvester: Harvester) -> PollResult | None:
        """Run one poll, logging instead of raising so the loop keeps going."""
        try:
            return harvester.poll()
        except HarvestError as exc:
            logger.warning("Poll of harvester [%s] abandoned: %s", harvester.id, exc)
        except Exception:
            logger.exception("Unexpected failure polling harvester [%s]", harvester.id)
        return None
