"""Bulk creation of rooms from a CSV file.

The file must carry a header naming ``id``, ``hostel_id`` and ``capacity``;
``current_occupancy`` and ``created_at`` may also be given. A file is taken
whole or not at all: every row is validated first and a single bad row
rejects the upload with one error entry per offending line.
"""
from __future__ import annotations

import logging

import pandas as pd
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ..exceptions import ConstraintViolation, ImportRejected
from ..models import Room
from .rooms import RoomDraft, build_room_draft

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("id", "hostel_id", "capacity")
OPTIONAL_COLUMNS = ("current_occupancy", "created_at")


def _read_frame(source) -> pd.DataFrame:
    limit = settings.HOSTEL_CSV_MAX_ROWS
    try:
        df = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            skip_blank_lines=False,
            nrows=limit + 1,
        )
    except pd.errors.EmptyDataError as exc:
        raise ImportRejected("The uploaded file is empty.") from exc
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as exc:
        raise ImportRejected(f"Could not read the file as CSV: {exc}") from exc

    # Blank lines count towards the limit; they are only dropped below.
    if len(df) > limit:
        raise ImportRejected(f"At most {limit} rooms can be imported at once.")

    df.columns = df.columns.str.strip().str.lower()
    df = df.fillna("")
    blank = df.astype(str).replace(r"^\s+$", "", regex=True).eq("").all(axis=1)
    # Kept rows retain their index, which maps back to the file line.
    return df[~blank]


def _check_columns(columns: list[str]) -> None:
    missing = [col for col in REQUIRED_COLUMNS if col not in columns]
    if missing:
        raise ImportRejected(f"Missing required columns: {', '.join(missing)}")
    unknown = [col for col in columns if col not in REQUIRED_COLUMNS + OPTIONAL_COLUMNS]
    if unknown:
        raise ImportRejected(f"Unknown columns: {', '.join(unknown)}")


def _parse_created_at(value: str):
    value = (value or "").strip()
    if not value:
        return None
    try:
        parsed = parse_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ConstraintViolation(f"created_at {value!r} is not an ISO 8601 timestamp.", code="invalid_room")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _validate_rows(df: pd.DataFrame) -> tuple[list[RoomDraft], list[dict]]:
    errors: list[dict] = []
    drafts: list[tuple[int, RoomDraft]] = []
    first_seen: dict[int, int] = {}

    for index, row in df.iterrows():
        line = index + 2  # line 1 is the header
        try:
            draft = build_room_draft(
                row["id"],
                row["hostel_id"],
                row["capacity"],
                row.get("current_occupancy") or 0,
                _parse_created_at(row.get("created_at", "")),
            )
        except ConstraintViolation as exc:
            errors.append({"row": line, "error": exc.message})
            continue

        if draft.id in first_seen:
            errors.append({"row": line, "error": f"Room {draft.id} already appears on line {first_seen[draft.id]}."})
            continue
        first_seen[draft.id] = line
        drafts.append((line, draft))

    existing = set(Room.objects.filter(pk__in=list(first_seen)).values_list("pk", flat=True))
    for line, draft in drafts:
        if draft.id in existing:
            errors.append({"row": line, "error": f"Room {draft.id} already exists."})

    errors.sort(key=lambda item: item["row"])
    return [draft for _, draft in drafts], errors


def import_rooms(source) -> list[Room]:
    """Validate and insert every room described by the CSV ``source``.

    ``source`` is a path or any file-like object :func:`pandas.read_csv`
    accepts, such as an uploaded file.
    """

    df = _read_frame(source)
    _check_columns(list(df.columns))
    if df.empty:
        raise ImportRejected("The file contains no rooms.")

    drafts, errors = _validate_rows(df)
    if errors:
        logger.info("Rejected room import with %s invalid rows", len(errors))
        raise ImportRejected(f"{len(errors)} row(s) are invalid; no rooms were imported.", errors=errors)

    try:
        with transaction.atomic():
            rooms = Room.objects.bulk_create([draft.to_model() for draft in drafts])
    except IntegrityError as exc:
        raise ConstraintViolation(f"Rooms could not be stored: {exc}", code="duplicate_room") from exc

    logger.info("Imported %s rooms", len(rooms))
    return rooms
