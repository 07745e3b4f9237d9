"""Validation helpers for workflow input and uploaded submission artifacts."""

from datetime import date, datetime, time
from pathlib import PurePath
from typing import Any

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from SmartLearnApp.core.conf import get_setting
from SmartLearnApp.core.exceptions import ArtifactRejected, InvalidGrade, InvalidInput

MIN_CAPACITY, MAX_CAPACITY = 1, 100
MIN_POINTS, MAX_POINTS = 1, 1000
MIN_GRADE, MAX_GRADE = 0, 100


def _require_int(value: Any) -> int | None:
    """Return value if it is a real integer (bool excluded), else None."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def require_text(value: Any, field: str) -> str:
    """Ensure a required text field is present and not blank."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field} is required.")
    return value.strip()


def validate_capacity(value: Any) -> int:
    """Course capacity (max students) must be an integer in [1, 100]."""
    number = _require_int(value)
    if number is None or not MIN_CAPACITY <= number <= MAX_CAPACITY:
        raise InvalidInput(f"Maximum students must be between {MIN_CAPACITY} and {MAX_CAPACITY}.")
    return number


def validate_max_points(value: Any) -> int:
    """Assignment max points must be an integer in [1, 1000]."""
    number = _require_int(value)
    if number is None or not MIN_POINTS <= number <= MAX_POINTS:
        raise InvalidInput(f"Maximum points must be between {MIN_POINTS} and {MAX_POINTS}.")
    return number


def validate_grade(value: Any) -> int:
    """Grade must be an integer in [0, 100]; 0 is a valid grade."""
    number = _require_int(value)
    if number is None or not MIN_GRADE <= number <= MAX_GRADE:
        raise InvalidGrade()
    return number


def parse_due_date(value: Any) -> datetime:
    """Parse an ISO-8601 datetime (or bare date) into an aware datetime.

    Naive values are interpreted in the current time zone; a bare date means
    the end of that day.
    """
    parsed: datetime | None = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            # parse_datetime reads "YYYY-MM-DD" as midnight, so try the date form first.
            day = parse_date(text)
            parsed = datetime.combine(day, time.max) if day else parse_datetime(text)
        except ValueError:
            parsed = None
    if parsed is None:
        raise InvalidInput(f"Due date {value!r} is not a valid date.")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def artifact_extension(file_obj: Any) -> str:
    """Lower-cased extension of an uploaded file name, without the dot."""
    name = getattr(file_obj, "name", "") or ""
    return PurePath(name).suffix.lower().lstrip(".")


def validate_file_size(file_obj: Any, max_mb: int | None = None) -> None:
    """Ensure file size does not exceed max_mb megabytes."""
    max_mb = max_mb if max_mb is not None else get_setting("MAX_ARTIFACT_MB")
    if file_obj.size > max_mb * 1024 * 1024:
        raise ArtifactRejected(f"File exceeds {max_mb} MB limit.")


def validate_artifact_extension(file_obj: Any) -> None:
    """Ensure the file extension is on the allow-list."""
    allowed = tuple(get_setting("ARTIFACT_EXTENSIONS"))
    ext = artifact_extension(file_obj)
    if ext not in allowed:
        shown = f".{ext}" if ext else "files without an extension"
        raise ArtifactRejected(
            f"Unsupported file type {shown}; allowed: {', '.join(allowed)}."
        )


def validate_artifact(file_obj: Any) -> None:
    """Full pre-upload check for a submission artifact."""
    if not file_obj:
        raise ArtifactRejected("No file was uploaded.")
    validate_artifact_extension(file_obj)
    validate_file_size(file_obj)
