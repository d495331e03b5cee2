#!/usr/bin/env python3
"""Command-line interface for attodo."""

import argparse
import json
import sys
import logging
import logging.handlers
import os
from datetime import datetime

from dateutil import tz
from dateutil.parser import isoparse

# Load configuration first
from attodo.config import get_env_or_default, load_env_file
from attodo.date_parser import parse
from attodo.tasks import build_task_record

logger = logging.getLogger("attodo.cli")


def setup_logging(debug=False):
    """Set up logging configuration."""
    if debug:
        level = logging.DEBUG
    else:
        level_name = get_env_or_default("LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)

    handlers = [logging.StreamHandler()]

    log_dir = get_env_or_default("LOG_DIR", "")
    if log_dir:
        log_dir = os.path.expanduser(log_dir)
        os.makedirs(log_dir, exist_ok=True)
        max_log_size = int(get_env_or_default("MAX_LOG_SIZE_MB", "10")) * 1024 * 1024
        backup_count = int(get_env_or_default("LOG_BACKUP_COUNT", "5"))
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "attodo.log"), maxBytes=max_log_size, backupCount=backup_count
        ))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def resolve_reference(reference, timezone_name):
    """
    Build the reference instant

    Args:
        reference: ISO 8601 string, or None for the current time
        timezone_name: IANA zone name for the instant (and for naive strings)

    Returns:
        Zone-aware datetime

    Raises:
        ValueError: On an unknown zone or unparseable reference
    """
    zone = tz.gettz(timezone_name)
    if zone is None:
        raise ValueError(f"Unknown time zone: {timezone_name}")

    if not reference:
        return datetime.now(zone)

    instant = isoparse(reference)
    if instant.tzinfo is None:
        return instant.replace(tzinfo=zone)
    return instant.astimezone(zone)


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description='Extract a due date from a task title')
    parser.add_argument('title', help='Task title, e.g. "tomorrow at 3pm call mom"')
    parser.add_argument('--reference', help='Reference instant (ISO 8601), default: now')
    parser.add_argument('--timezone', default=None, help='Time zone for the reference instant')
    parser.add_argument('--due-date', default='', help='Explicit due date (YYYY-MM-DD)')
    parser.add_argument('--due-time', default='', help='Explicit due time (HH:MM)')
    parser.add_argument('--description', default='', help='Task description')
    parser.add_argument('--tags', default='', help='Comma-separated tags')
    parser.add_argument('--create', action='store_true', help='Create the task in your PDS')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--config', help='Path to config file')

    args = parser.parse_args(argv)

    # Load custom config if provided
    if args.config:
        if os.path.exists(args.config):
            load_env_file(args.config)
        else:
            print(f"Config file not found: {args.config}", file=sys.stderr)
            return 1

    setup_logging(args.debug)

    if not args.title.strip():
        print("Title is required", file=sys.stderr)
        return 1

    timezone_name = args.timezone or get_env_or_default("ATTODO_TIMEZONE", "UTC")
    try:
        reference = resolve_reference(args.reference, timezone_name)
    except ValueError as e:
        print(f"Invalid reference: {e}", file=sys.stderr)
        return 1

    result = parse(args.title, reference)
    record = build_task_record(
        args.title,
        description=args.description,
        tags_input=args.tags,
        due_date_input=args.due_date,
        due_time_input=args.due_time,
        reference=reference,
    )

    if not args.create:
        print(json.dumps({"parse": result.to_dict(), "record": record}, indent=2))
        return 0

    from attodo.pds_client import create_client_from_env, get_user_friendly_error

    try:
        client = create_client_from_env()
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    created = client.create_task(record)
    if not created["success"]:
        print(get_user_friendly_error(created["error"], "Failed to create task. Please try again."),
              file=sys.stderr)
        return 1

    print(json.dumps({"uri": created["uri"], "rkey": created["rkey"], "record": record}, indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
