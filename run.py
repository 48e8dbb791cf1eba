#!/usr/bin/env python3
"""
Deviation Monitor - Entry Point

Polls a price from a web page and alerts when it moves past a threshold
relative to the purchase price, until the configured closing hour.
All settings come from environment variables (or a .env file).

Usage:
    python run.py                    # Run until closing hour
    python run.py --test             # Single poll cycle, then exit
    python run.py --test-alert       # Send a sample alert and exit
    python run.py --env-file prod.env
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from deviation_monitor.analyzer import AlertEvent
from deviation_monitor.config import ConfigurationError, MonitorConfig, load_config
from deviation_monitor.extractor import PlaywrightPriceSource
from deviation_monitor.monitor import DeviationMonitor
from deviation_monitor.notifier import NotificationError, build_notifier

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("deviation_monitor")


def build_monitor(config: MonitorConfig) -> DeviationMonitor:
    source = PlaywrightPriceSource(
        url=config.source_url,
        selector=config.source_selector,
        headless=config.headless,
        timeout_ms=config.navigation_timeout_ms,
    )
    return DeviationMonitor(config, source, build_notifier(config))


async def test_alert(config: MonitorConfig) -> bool:
    """Send a sample alert through the configured channel."""
    print("\n🔔 Sending test alert...")
    notifier = build_notifier(config)
    print(f"   Channel: {type(notifier).__name__}")

    event = AlertEvent.build(percent=12.5, current_price=112.5, quantity=config.quantity)
    try:
        await notifier.notify(event)
    except NotificationError as e:
        print(f"❌ Failed to send test alert: {e}")
        return False

    print("✅ Test alert sent.")
    return True


async def run_single_check(config: MonitorConfig) -> None:
    """Run a single poll cycle (for testing)."""
    print(f"\n🔍 Running single check on {config.source_url}...")

    monitor = build_monitor(config)
    event = await monitor.run_once()

    status = "🚨 alert sent" if event else "no alert"
    print(f"\n📊 Result: {status}")


async def run_continuous(config: MonitorConfig) -> None:
    """Run until the closing hour."""
    print("\n🚀 Starting price deviation monitoring...")
    print(f"   URL: {config.source_url}")
    print(f"   Selector: {config.source_selector}")
    print(f"   Reference price: {config.reference_price}")
    print(f"   Threshold: {config.alert_threshold_percent}%")
    print(f"   Interval: {config.poll_interval_seconds:g}s")
    print(f"   Closing hour: {config.closing_hour:02d}:00\n")

    await build_monitor(config).run()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Price deviation monitor with email/Discord alerts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file (default: .env in the working directory)",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Run a single poll cycle and exit",
    )
    parser.add_argument(
        "--test-alert",
        action="store_true",
        help="Send a sample alert through the configured channel and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.env_file is not None:
        if not args.env_file.exists():
            print(f"❌ Env file not found: {args.env_file}")
            return 1
        load_dotenv(args.env_file)

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.test_alert:
        return 0 if asyncio.run(test_alert(config)) else 1

    try:
        if args.test:
            asyncio.run(run_single_check(config))
        else:
            asyncio.run(run_continuous(config))
    except KeyboardInterrupt:
        print("\n\n👋 Monitor stopped.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
