#!/usr/bin/env python3
"""Dev entrypoint for running the trigger worker.

Usage:
    # Fire whatever is due once
    python scripts/run_workers.py --once

    # Continuous loop (Ctrl+C to stop)
    python scripts/run_workers.py --loop

    # Loop with custom interval
    python scripts/run_workers.py --loop --interval 10

    # Ring fires in-app (logged by the alert presenter) instead of pushing
    python scripts/run_workers.py --loop --foreground

Environment variables:
    WORKER_BATCH_SIZE: Triggers per batch (default: 50)
    WORKER_POLL_INTERVAL_SECONDS: Seconds between cycles (default: 5)
    PUSH_GATEWAY_URL: Device notification gateway (default: in-process)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.workers import (
    run_worker_once,
    run_worker_loop,
    configure_worker_logging,
)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Fire due reminder triggers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--once", action="store_true", help="Fire due triggers once and exit")
    mode.add_argument("--loop", action="store_true", help="Poll for due triggers continuously")

    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between cycles (loop mode only)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Maximum iterations before stopping (loop mode only)",
    )
    parser.add_argument("--batch-size", type=int, default=None, help="Triggers per batch")
    parser.add_argument(
        "--foreground",
        action="store_true",
        help="Ring fires through in-app alert delivery instead of platform notifications",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable DEBUG logging")
    parser.add_argument("--quiet", "-q", action="store_true", help="Log warnings only")

    args = parser.parse_args()

    if args.verbose:
        configure_worker_logging(logging.DEBUG)
    elif args.quiet:
        configure_worker_logging(logging.WARNING)
    else:
        configure_worker_logging(logging.INFO)

    logger = logging.getLogger(__name__)

    try:
        if args.once:
            result = run_worker_once(batch_size=args.batch_size, foreground=args.foreground)

            print("\n--- Trigger Run Summary ---")
            print(f"Fired: {result.total_processed}")
            print(f"Failed: {result.total_failed}")
            if args.foreground:
                print(f"Alerts pending: {result.alerts_pending}")

            for name, worker_result in result.worker_results.items():
                print(f"\n{name}:")
                for outcome, count in worker_result.metadata.items():
                    print(f"  {outcome}: {count}")

            for err in result.errors:
                print(f"  - {err}")

            return 0 if not result.errors else 1

        logger.info("Starting worker loop (Ctrl+C to stop)...")
        run_worker_loop(
            interval_seconds=args.interval,
            max_iterations=args.max_iterations,
            batch_size=args.batch_size,
            foreground=args.foreground,
        )
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Worker failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
