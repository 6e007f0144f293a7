from __future__ import annotations

import argparse
import asyncio
import logging

from rich.logging import RichHandler

from bitcoin_monitor.config.loader import load_config
from bitcoin_monitor.config.models import MonitorConfig
from bitcoin_monitor.monitoring.logger import DashboardConsole
from bitcoin_monitor.scheduler.aggregator import MetricsAggregator
from bitcoin_monitor.scheduler.orchestrator import MonitorOrchestrator


async def run_app(config: MonitorConfig, run_minutes: float | None, once: bool = False) -> None:
    console = DashboardConsole()
    aggregator = MetricsAggregator.from_config(config, notifier=console.notify_failures)
    orchestrator = MonitorOrchestrator(config=config, aggregator=aggregator, console=console)

    if once:
        try:
            await orchestrator.run_cycle()
        finally:
            await orchestrator.stop()
        return

    await orchestrator.start()
    try:
        if run_minutes is None:
            await orchestrator.run_forever()
        else:
            await asyncio.sleep(run_minutes * 60)
    finally:
        await orchestrator.stop()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bitcoin network monitor")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML/TOML/JSON config")
    parser.add_argument(
        "--minutes",
        type=float,
        default=None,
        help="Stop after this many minutes (runs until interrupted by default)",
    )
    parser.add_argument("--once", action="store_true", help="Refresh once, render and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(name)s - %(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    config = load_config(args.config)
    try:
        asyncio.run(run_app(config, run_minutes=args.minutes, once=args.once))
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
