"""
Scheduling of the refresh cycles.

Every cycle becomes its own APScheduler interval job. The jobs share no lock
and are not phase-aligned; each runs on the scheduler's thread pool until
shutdown() is called.
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Sequence

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from cnexporter.refresh import RefreshCycle

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Runs refresh cycles concurrently on a fixed interval."""

    def __init__(
        self,
        cycles: Sequence[RefreshCycle],
        interval: float,
        scheduler: Optional[BackgroundScheduler] = None
    ):
        """
        Args:
            cycles: Refresh cycles to run, one job each.
            interval: Seconds between two ticks of the same cycle.
            scheduler: Optional pre-built APScheduler instance.
        """
        if interval <= 0:
            raise ValueError(f"Polling interval must be positive, got {interval}")

        self.cycles = list(cycles)
        self.interval = interval
        if scheduler is None:
            scheduler = BackgroundScheduler(
                executors={'default': ThreadPoolExecutor(max(len(self.cycles), 1))}
            )
        self.scheduler = scheduler

    def start(self):
        """Schedule every cycle, first tick immediately, and start the scheduler."""
        for cycle in self.cycles:
            self.scheduler.add_job(
                cycle.run,
                IntervalTrigger(seconds=self.interval),
                id=f'refresh_{cycle.name}',
                name=f'Refresh {cycle.name}',
                next_run_time=datetime.now(),
                # A tick never overlaps the next one of the same cycle
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )
            logger.info(f"Scheduled {cycle.name} refresh every {self.interval} seconds")

        self.scheduler.start()

    def run_once(self) -> Dict[str, bool]:
        """Run one tick of every cycle synchronously."""
        return {cycle.name: cycle.run() for cycle in self.cycles}

    def shutdown(self, wait: bool = True):
        """Stop scheduling ticks, waiting for running ones if `wait` is set."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Refresh scheduler stopped")

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)
