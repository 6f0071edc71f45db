from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .client import DrawPoolClient
from .config import BotSettings, load_config
from .simulator import ClaimSimulator
from .types import VerificationReport


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def apply_overrides(settings: BotSettings, args: argparse.Namespace) -> BotSettings:
    updates = {}
    if args.users is not None:
        updates["users"] = args.users
    if args.url:
        updates["base_url"] = args.url.rstrip("/")
    if args.no_reset:
        updates["reset_first"] = False
    return settings.copy(**updates) if updates else settings


async def run(args: argparse.Namespace) -> VerificationReport:
    configure_logging(args.verbose)
    settings = apply_overrides(load_config(args.env_file), args)
    logger = logging.getLogger("drawbot")
    logger.info("Simulating %s users against %s", settings.users, settings.base_url)

    client = DrawPoolClient(settings)
    simulator = ClaimSimulator(settings, client, logger=logger)
    try:
        if args.contend is not None:
            report = await simulator.contend(args.contend)
        else:
            report = await simulator.run()
    finally:
        await client.close()

    for index, attempt in enumerate(report.successes, start=1):
        logger.info("%s. %s: number %s", index, attempt.user_name, attempt.number)
    if report.passed:
        logger.info("Verification passed: every granted number is unique.")
    else:
        logger.error("Verification failed: duplicate or unrecorded grants detected.")
    return report


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Concurrent claim simulator for the draw pool")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file with settings")
    parser.add_argument("--url", type=str, default=None, help="Base URL of the draw pool service.")
    parser.add_argument("--users", type=int, default=None, help="Number of simulated users.")
    parser.add_argument(
        "--contend", type=int, default=None, metavar="N", help="Make every user claim number N."
    )
    parser.add_argument("--no-reset", action="store_true", help="Skip the reset before the run.")
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging (default INFO)."
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    try:
        report = asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Simulation stopped by user.")
        return
    if not report.passed:
        sys.exit(1)


if __name__ == "__main__":
    main()
