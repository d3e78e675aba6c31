"""
Engine Loop

The heartbeat of the engine. Every tick processes one batch of PENDING
inbox items; every Nth tick also runs the sweeps:

1. Nudge sweep (Coach) - nudge stale active projects
2. Scheduled workflows - run due SCHEDULE workflows
3. Calendar sweep (CalendarWatcher) - turn due events into captures

Everything runs sequentially on one thread. Only one loop should be active
against a store at a time; the inbox claim is a conditional update so a
second instance cannot process the same item twice.
"""

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from agents.workflow_engine import WorkflowEngine
from agents.coach import Coach
from agents.calendar_watcher import CalendarWatcher
from utils.time_utils import utc_now
from typing import Callable, Optional
from datetime import datetime
import logging
import time

logger = logging.getLogger(__name__)


class EngineLoop:
    def __init__(
        self,
        workflow_engine: WorkflowEngine,
        coach: Coach,
        calendar_watcher: CalendarWatcher,
        interval_seconds: float = 3.0,
        batch_size: int = 5,
        sweep_every: int = 10,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if sweep_every < 1:
            raise ValueError("sweep_every must be at least 1")

        self.workflow_engine = workflow_engine
        self.coach = coach
        self.calendar_watcher = calendar_watcher
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self.sweep_every = sweep_every
        self.clock = clock
        self.sleep = sleep
        self.tick = 0

    def run_once(self) -> dict:
        """One tick: a batch of inbox items, plus the sweeps on every Nth tick"""
        summary = {
            'tick': self.tick,
            'batch': self.workflow_engine.process_pending_items(self.batch_size),
            'swept': False,
        }

        if self.tick % self.sweep_every == 0:
            summary['sweeps'] = self.run_sweeps()
            summary['swept'] = True

        self.tick += 1
        return summary

    def run_sweeps(self) -> dict:
        """Nudge, scheduled workflows and calendar, in that order; each isolated"""
        now = self.clock()
        logger.info(f"Running sweeps (tick {self.tick})")

        results = {}
        for name, sweep in (
            ('nudges', self.coach.run_nudge_sweep),
            ('scheduled_workflows', self.workflow_engine.run_scheduled_workflows),
            ('calendar', self.calendar_watcher.run_calendar_sweep),
        ):
            try:
                results[name] = sweep(now)
            except Exception as e:
                logger.error(f"Sweep '{name}' failed: {e}", exc_info=True)
                results[name] = {'status': 'error', 'error': str(e)}

        return results

    def run_forever(self, max_iterations: Optional[int] = None):
        """Run ticks until interrupted

        Args:
            max_iterations: Optional limit on iterations (for testing)
        """
        logger.info(f"Starting engine loop (every {self.interval_seconds}s, sweeps every {self.sweep_every} ticks)")

        iteration = 0

        try:
            while True:
                if max_iterations is not None and iteration >= max_iterations:
                    logger.info(f"Reached max_iterations ({max_iterations}), stopping")
                    break

                iteration += 1

                try:
                    summary = self.run_once()
                    if summary['batch']['items_processed'] > 0:
                        logger.info(f"Tick {summary['tick']}: processed {summary['batch']['items_processed']} items")
                except Exception as e:
                    logger.error(f"Error in engine loop iteration {iteration}: {e}", exc_info=True)

                self.sleep(self.interval_seconds)

        except KeyboardInterrupt:
            logger.info("Engine loop stopped by user (Ctrl+C)")


def start_scheduler(loop: EngineLoop) -> BlockingScheduler:
    """
    Drive an EngineLoop from APScheduler instead of run_forever.

    One job, never overlapping itself: a slow tick delays the next one
    rather than running concurrently with it.

    Returns:
        APScheduler BlockingScheduler instance (not yet started)
    """
    scheduler = BlockingScheduler()

    scheduler.add_job(
        loop.run_once,
        trigger=IntervalTrigger(seconds=loop.interval_seconds),
        id='engine_tick',
        name='Engine tick (inbox batch + sweeps)',
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    logger.info(f"Engine scheduler configured (every {loop.interval_seconds}s)")
    return scheduler
