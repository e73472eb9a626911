#!/usr/bin/env python3
"""
Basic Usage Examples for the periodic runner

Run a couple of tasks in the foreground and watch the coloured console
output. Press Ctrl+C to stop.
"""

import asyncio
import random
import sys
import time
from pathlib import Path

# Add parent directory to path for imports (if running as standalone script)
sys.path.insert(0, str(Path(__file__).parent.parent))

from periodic import execute_periodically, load_logging_config, setup_logging


def check_disk(path):
    """Pretend to check free disk space."""
    free = random.randint(5, 100)
    if free < 20:
        raise RuntimeError(f"only {free}% free on {path}")
    return free


async def poll_feed(url):
    """Pretend to poll a feed asynchronously."""
    await asyncio.sleep(0.2)
    return f"{random.randint(0, 5)} new items from {url}"


def main():
    setup_logging(load_logging_config())

    # Example 1: Synchronous task with callbacks and an error budget
    disk = execute_periodically(
        work=check_disk,
        arguments=["/"],
        interval=1.0,
        on_success=lambda free: print(f"  disk: {free}% free"),
        on_failure=lambda error: print(f"  disk check failed: {error}"),
        error_rate_limit=3,
        resume_after_abort=True,
        resume_delay=10.0,
    )

    # Example 2: Async task, quiet mode
    feed = execute_periodically(
        work=poll_feed,
        arguments=["https://example.com/feed"],
        interval=2.0,
        on_success=print,
        quiet=True,
        name="feed-poller",
    )

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        disk.stop()
        feed.stop()
        print(disk.get_stats())
        print(feed.get_stats())


if __name__ == "__main__":
    main()
