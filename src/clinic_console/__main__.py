from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import date

from clinic_console.api import ConsoleApiClient
from clinic_console.cache import get_shared_cache
from clinic_console.config import YamlConfigLoader
from clinic_console.config.models import AppConfig, ConfigLoadRequest
from clinic_console.logging import init_logging
from clinic_console.lookups import AppointmentLookups

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clinic-console", description="Clinic console data-access tools")
    parser.add_argument(
        "--config",
        default="data/config/config.yaml",
        help="Path to config.yaml (default: data/config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: lookups
    subparsers.add_parser("lookups", help="Load the cached appointment lookup lists and print their sizes")

    # Command: available-dates
    dates_parser = subparsers.add_parser("available-dates", help="Print a doctor's available dates for three months")
    dates_parser.add_argument("--doctor", required=True, help="Doctor profile id")
    dates_parser.add_argument("--location", required=True, help="Work location id")
    dates_parser.add_argument(
        "--anchor",
        type=date.fromisoformat,
        default=None,
        help="Anchor date in YYYY-MM-DD (default: today)",
    )

    # Command: slots
    slots_parser = subparsers.add_parser("slots", help="Print a doctor's free time slots on one date")
    slots_parser.add_argument("--doctor", required=True, help="Doctor profile id")
    slots_parser.add_argument("--location", required=True, help="Work location id")
    slots_parser.add_argument("--date", required=True, type=date.fromisoformat, help="Service date in YYYY-MM-DD")

    return parser


async def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
    )
    return await loader.load(request)


async def _run(args: argparse.Namespace) -> None:
    config = await _load_config(args)
    init_logging(config.logging)
    logger.info("Starting console data tools. command=%s base_url=%s", args.command, config.api.base_url)

    cache = get_shared_cache(ttl_seconds=config.cache.lookup_ttl_seconds)
    async with ConsoleApiClient(config.api) as api:
        lookups = AppointmentLookups(
            api=api,
            cache=cache,
            allow_past_dates=config.app.allow_past_dates,
            search_settings=config.search,
        )
        try:
            if args.command == "lookups":
                await lookups.load_static_lists()
                summary = {
                    "work_locations": len(lookups.work_locations.items),
                    "specialties": len(lookups.specialties.items),
                    "public_doctors": len(lookups.public_doctors.items),
                    "initial_patients": len(lookups.initial_patients.items),
                }
                print(json.dumps(summary, indent=2))
            elif args.command == "available-dates":
                dates = await lookups.select_doctor(args.doctor, args.location, anchor=args.anchor)
                print(json.dumps(dates, indent=2))
            elif args.command == "slots":
                slots = await lookups.select_date(args.doctor, args.location, args.date)
                print(json.dumps([{"timeStart": s.time_start, "timeEnd": s.time_end} for s in slots], indent=2))
        finally:
            lookups.close()


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
