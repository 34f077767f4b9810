#!/usr/bin/env python3
"""Dev entrypoint for the overdue scanner and manual event reprocessing.

Usage:
    # Single overdue scan
    python scripts/run_workers.py --once

    # Continuous scans (Ctrl+C to stop)
    python scripts/run_workers.py --loop --interval 600

    # Limit iterations (for testing)
    python scripts/run_workers.py --loop --max-iterations 3

    # Reprocess a stored event
    python scripts/run_workers.py --process-event 6f1c...

Environment variables:
    DATABASE_URL: Database connection string
    OVERDUE_DEDUP_WINDOW_HOURS: Skip assignments reported within N hours (default: 0)
    SCAN_INTERVAL_SECONDS: Seconds between scans in loop mode (default: 3600)
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.errors import PipelineError
from app.workers import (
    configure_worker_logging,
    reprocess_event,
    run_scan_loop,
    run_scan_once,
)


def main() -> int:
    """Main entrypoint for the scan runner."""
    parser = argparse.ArgumentParser(
        description="Run the overdue scanner or reprocess events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--once", action="store_true", help="Run one scan and exit")
    mode.add_argument("--loop", action="store_true", help="Run scans continuously")
    mode.add_argument(
        "--process-event",
        metavar="EVENT_ID",
        default=None,
        help="Process a stored event again and exit",
    )

    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between scans (loop mode only)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Maximum scans before stopping (loop mode only)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable DEBUG logging")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings")

    args = parser.parse_args()

    if args.verbose:
        configure_worker_logging(logging.DEBUG)
    elif args.quiet:
        configure_worker_logging(logging.WARNING)
    else:
        configure_worker_logging(logging.INFO)

    logger = logging.getLogger(__name__)

    try:
        if args.process_event:
            result = reprocess_event(args.process_event)
            print(json.dumps(result.to_dict(), indent=2))
            return 0

        if args.once:
            result = run_scan_once()

            print("\n--- Overdue Scan Summary ---")
            if result.scan:
                print(f"Overdue found: {result.scan.overdue_found}")
                print(f"Emitted: {result.scan.emitted}")
                print(f"Processed: {result.scan.processed}")
                print(f"Deduplicated: {result.scan.deduplicated}")
                for err in result.scan.errors:
                    print(f"  - {err['item_id']}: {err['error']}")
            if result.error:
                print(f"Error: {result.error}")

            return 0 if not result.error else 1

        run_scan_loop(interval_seconds=args.interval, max_iterations=args.max_iterations)
        return 0

    except PipelineError as e:
        logger.error(f"{e.message}: {e.detail}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Runner failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
