#!/usr/bin/env python
"""
Command line tools for the calendar.

Usage:
    # Create the tables
    calagator init-db

    # Preview the events in a remote or local iCalendar feed
    calagator import http://example.com/events.ics

    # Import and save them
    calagator import feed.ics --save

    # Export all non-duplicate events
    calagator export --output calendar.ics

    # List duplicate groups by title and start time
    calagator duplicates --type title,start_time

    # Mark events 7 and 9 as duplicates of event 3
    calagator squash 3 7 9
"""

import argparse
import asyncio
import json
import logging.config
import sys
from pathlib import Path
from typing import List, Optional

from calagator.config import get_settings
from calagator.crud.event import get_event, get_events
from calagator.database import async_session, create_db_and_tables
from calagator.exceptions import CalagatorError
from calagator.logging_config import configure_logging
from calagator.schemas.event import EventResponse
from calagator.services import duplicates, ical

logger = logging.getLogger("calagator.cli")


def _event_url(event) -> str:
    return f"{get_settings().SITE_URL}events/{event.id}"


async def import_calendar(source: str, save: bool) -> int:
    path = Path(source)
    text = path.read_text(encoding="utf-8") if path.exists() else None
    url = None if text is not None else source

    async with async_session() as db:
        events = await ical.to_events(db, text=text, url=url, save=save)
        for event in events:
            venue = event.venue.title if event.venue is not None else "-"
            print(f"{event.start_time:%Y-%m-%d %H:%M}  {event.title}  @ {venue}")
    logger.info(f"{'Saved' if save else 'Parsed'} {len(events)} event(s) from {source}")
    return 0


async def export_calendar(output: Optional[str]) -> int:
    async with async_session() as db:
        events = await get_events(db, include_duplicates=False)
        document = ical.render(events, url_helper=_event_url)

    if output:
        Path(output).write_text(document, encoding="utf-8")
        logger.info(f"Wrote {len(events)} event(s) to {output}")
    else:
        sys.stdout.write(document)
    return 0


async def list_duplicates(type_: str) -> int:
    async with async_session() as db:
        groups = await duplicates.find_duplicates_by_type(db, type_)

    report = [
        {
            "key": [str(value) if value is not None else None for value in key],
            "events": [EventResponse.model_validate(event).model_dump(mode="json") for event in events],
        }
        for key, events in groups.items()
    ]
    print(json.dumps(report, indent=2))
    return 0


async def squash_events(master_id: int, slave_ids: List[int]) -> int:
    async with async_session() as db:
        master = await get_event(db, master_id)
        if master is None:
            logger.error(f"Master event {master_id} not found")
            return 1
        slaves = []
        for slave_id in slave_ids:
            slave = await get_event(db, slave_id)
            if slave is None:
                logger.error(f"Event {slave_id} not found")
                return 1
            slaves.append(slave)
        await duplicates.squash_many(db, master, slaves)
    print(f"Squashed {', '.join(map(str, slave_ids))} into {master_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="calagator", description="Calendar maintenance tools")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables")

    import_parser = subparsers.add_parser("import", help="Import an iCalendar feed")
    import_parser.add_argument("source", help="URL or path of the iCalendar document")
    import_parser.add_argument("--save", action="store_true", help="Persist the parsed events")

    export_parser = subparsers.add_parser("export", help="Export events as iCalendar")
    export_parser.add_argument("--output", "-o", help="File to write instead of stdout")

    duplicates_parser = subparsers.add_parser("duplicates", help="List duplicate event groups")
    duplicates_parser.add_argument("--type", default="title", help="na, all or comma separated fields")

    squash_parser = subparsers.add_parser("squash", help="Mark events as duplicates of a master")
    squash_parser.add_argument("master_id", type=int)
    squash_parser.add_argument("slave_ids", type=int, nargs="+")

    return parser


async def run(args: argparse.Namespace) -> int:
    if args.command == "init-db":
        await create_db_and_tables()
        return 0
    if args.command == "import":
        return await import_calendar(args.source, args.save)
    if args.command == "export":
        return await export_calendar(args.output)
    if args.command == "duplicates":
        return await list_duplicates(args.type)
    if args.command == "squash":
        return await squash_events(args.master_id, args.slave_ids)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.config.dictConfig(configure_logging(verbose=args.verbose))
    try:
        return asyncio.run(run(args))
    except (CalagatorError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
