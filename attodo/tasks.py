#!/usr/bin/env python3
"""
Task Record Module

Builds and reads app.attodo.task records, deciding the due date from either
the explicit form fields or the natural-language date in the title.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Any, Tuple

from dateutil import tz
from dateutil.parser import isoparse

from attodo.date_parser import parse

logger = logging.getLogger("attodo.tasks")

TASK_COLLECTION = "app.attodo.task"

MAX_TAGS_PER_TASK = 10
MAX_TAG_LENGTH = 30


def format_timestamp(value: datetime) -> str:
    """Format a UTC instant as RFC 3339 ("2024-11-26T00:00:00Z")"""
    return value.astimezone(tz.UTC).strftime('%Y-%m-%dT%H:%M:%SZ')


def parse_tags(tags_input: str) -> List[str]:
    """
    Parse comma-separated tags from a form field

    Args:
        tags_input: Raw input such as "work, urgent,Work"

    Returns:
        Cleaned tags, de-duplicated case-insensitively, at most MAX_TAGS_PER_TASK
    """
    if not tags_input:
        return []

    seen = set()
    tags = []

    for raw in tags_input.split(","):
        cleaned = raw.strip()
        if not cleaned:
            continue

        cleaned = cleaned[:MAX_TAG_LENGTH]

        lower = cleaned.lower()
        if lower in seen:
            continue
        seen.add(lower)
        tags.append(cleaned)

        if len(tags) >= MAX_TAGS_PER_TASK:
            break

    return tags


def _explicit_due_date(due_date_input: str, due_time_input: str,
                       reference: datetime) -> Optional[datetime]:
    """Combine "YYYY-MM-DD" and optional "HH:MM" fields in the reference zone"""
    try:
        day = datetime.strptime(due_date_input, '%Y-%m-%d')
    except ValueError:
        logger.warning(f"Ignoring malformed due date field: {due_date_input!r}")
        return None

    hour, minute = 0, 0
    if due_time_input:
        try:
            clock = datetime.strptime(due_time_input, '%H:%M')
            hour, minute = clock.hour, clock.minute
        except ValueError:
            logger.warning(f"Ignoring malformed due time field: {due_time_input!r}")

    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=reference.tzinfo)
    return local.astimezone(tz.UTC)


def resolve_due_date(title: str, due_date_input: str, due_time_input: str,
                     reference: datetime) -> Tuple[str, Optional[datetime]]:
    """
    Decide a task's title and due date

    Explicit form fields win over anything found in the title. Without them
    the title is parsed and, when a date is found, replaced by its cleaned
    version (unless that would leave it empty).

    Args:
        title: Task title as typed
        due_date_input: Explicit "YYYY-MM-DD" field, may be empty
        due_time_input: Explicit "HH:MM" field, may be empty
        reference: The user's current local time

    Returns:
        (title, due date in UTC or None)
    """
    if due_date_input:
        return title, _explicit_due_date(due_date_input, due_time_input, reference)

    result = parse(title, reference)
    if result.due_date is None:
        return title, None

    logger.info(f"Parsed due date from title: {result.matched_text!r}")
    due_utc = result.due_date.astimezone(tz.UTC)
    if result.cleaned_title:
        title = result.cleaned_title
    return title, due_utc


def build_task_record(title: str, description: str = "", tags_input: str = "",
                      due_date_input: str = "", due_time_input: str = "",
                      reference: Optional[datetime] = None,
                      created_at: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Build a new task record ready for the PDS

    Args:
        title: Task title (required)
        description: Optional description
        tags_input: Comma-separated tags
        due_date_input: Explicit "YYYY-MM-DD" due date, may be empty
        due_time_input: Explicit "HH:MM" due time, may be empty
        reference: Local "now" for date parsing (defaults to created_at)
        created_at: Creation instant (required if reference is not given)

    Returns:
        Record dictionary

    Raises:
        ValueError: If the title is empty or no instant is supplied
    """
    if not title:
        raise ValueError("Title is required")

    reference = reference or created_at
    if reference is None:
        raise ValueError("A reference instant is required")
    created_at = created_at or reference

    title, due_date = resolve_due_date(title, due_date_input, due_time_input, reference)

    record = {
        "$type": TASK_COLLECTION,
        "title": title,
        "description": description,
        "completed": False,
        "createdAt": format_timestamp(created_at),
    }

    if due_date is not None:
        record["dueDate"] = format_timestamp(due_date)

    tags = parse_tags(tags_input)
    if tags:
        record["tags"] = tags

    return record


def parse_task_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Read task fields out of a stored record

    Unparseable timestamps and non-string tags are skipped rather than
    rejected, since records may have been written by other clients.
    """
    title = record.get("title")
    description = record.get("description")

    task = {
        "title": title if isinstance(title, str) else "",
        "description": description if isinstance(description, str) else "",
        "completed": record.get("completed") is True,
        "createdAt": None,
        "completedAt": None,
        "dueDate": None,
        "tags": [],
    }

    for field in ("createdAt", "completedAt", "dueDate"):
        value = record.get(field)
        if isinstance(value, str):
            try:
                task[field] = isoparse(value)
            except ValueError:
                logger.debug(f"Skipping unparseable {field}: {value!r}")

    tags = record.get("tags")
    if isinstance(tags, list):
        task["tags"] = [tag for tag in tags if isinstance(tag, str)]

    return task


def apply_task_edit(task: Dict[str, Any], title: str, description: str,
                    tags_input: str, due_date_input: str, due_time_input: str,
                    reference: datetime) -> Dict[str, Any]:
    """
    Apply an edit form to a task and return the record to store

    The due date is cleared when neither the form nor the new title
    carries one.

    Raises:
        ValueError: If the title is empty
    """
    if not title:
        raise ValueError("Title is required")

    title, due_date = resolve_due_date(title, due_date_input, due_time_input, reference)

    task = dict(task)
    task["title"] = title
    task["description"] = description
    task["tags"] = parse_tags(tags_input)
    task["dueDate"] = due_date

    record = {
        "$type": TASK_COLLECTION,
        "title": task["title"],
        "description": task["description"],
        "completed": bool(task.get("completed")),
        "createdAt": format_timestamp(task.get("createdAt") or reference),
    }

    if task.get("completedAt"):
        record["completedAt"] = format_timestamp(task["completedAt"])
    if due_date is not None:
        record["dueDate"] = format_timestamp(due_date)
    if task["tags"]:
        record["tags"] = task["tags"]

    return record


def extract_rkey(uri: str) -> str:
    """Return the record key (last path segment) of an AT URI"""
    return uri.split("/")[-1] if uri else ""
