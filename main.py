from config import settings
from services.database import DatabaseService
from services.llm import get_llm_provider
from agents.workflow_engine import WorkflowEngine
from agents.coach import Coach
from agents.calendar_watcher import CalendarWatcher
from schedulers.engine_loop import EngineLoop, start_scheduler
import argparse
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def build_engine_loop() -> EngineLoop:
    """Wire store, provider, agents and loop from settings"""
    db = DatabaseService()
    llm = get_llm_provider(settings)

    workflow_engine = WorkflowEngine(db, llm, confidence_threshold=settings.CONFIDENCE_THRESHOLD)
    coach = Coach(db, llm, cooldown_hours=settings.NUDGE_COOLDOWN_HOURS)
    calendar_watcher = CalendarWatcher(db)

    return EngineLoop(
        workflow_engine,
        coach,
        calendar_watcher,
        interval_seconds=settings.POLL_INTERVAL_SECONDS,
        batch_size=settings.BATCH_SIZE,
        sweep_every=settings.SWEEP_EVERY_N_TICKS,
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="CognitoFlow intelligence engine")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the engine loop until interrupted")
    run_parser.add_argument(
        "--iterations", type=int, default=None,
        help="Stop after this many ticks (default: run forever)"
    )
    run_parser.add_argument(
        "--scheduler", action="store_true",
        help="Drive ticks from APScheduler instead of the sleep loop"
    )

    subparsers.add_parser("tick", help="Run a single tick and print its summary")
    subparsers.add_parser("sweep", help="Run the nudge, schedule and calendar sweeps now")

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        loop = build_engine_loop()
    except Exception as e:
        logger.error(f"Engine failed to start: {e}", exc_info=True)
        return 1

    logger.info(f"CognitoFlow engine starting ({settings.ENVIRONMENT})")

    if args.command == "run":
        if args.scheduler:
            scheduler = start_scheduler(loop)
            try:
                scheduler.start()
            except (KeyboardInterrupt, SystemExit):
                logger.info("Engine scheduler stopped")
        else:
            loop.run_forever(max_iterations=args.iterations)
    elif args.command == "tick":
        print(json.dumps(loop.run_once(), indent=2, default=str))
    elif args.command == "sweep":
        print(json.dumps(loop.run_sweeps(), indent=2, default=str))

    return 0


if __name__ == "__main__":
    sys.exit(main())
