"""
Creation-time resolution for stored objects.

Object keys written by the application embed their creation instant in the
filename as ``[<writer>-]YYYY-MM-DDTHH-mm-ssZ-<suffix>``, e.g.
``chat-2024-10-05T14-30-00Z-a1b2c3d4.json`` (colons replaced by dashes so
the key stays URL safe). Keys are the ground truth for logical creation time;
the store's upload timestamp is only a fallback for objects whose key does
not follow the convention.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Union

FILENAME_TIMESTAMP_PATTERN = re.compile(
    r'^(?P<writer>(?:[A-Za-z][A-Za-z0-9]*-)*)'
    r'(?P<date>\d{4}-\d{2}-\d{2})'
    r'T(?P<hour>\d{2})-(?P<minute>\d{2})-(?P<second>\d{2})'
    r'(?:[.-](?P<millis>\d{3}))?'
    r'Z-(?P<suffix>.+)$'
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 string, returning None when it is not a valid instant."""
    text = value.strip()
    if not text:
        return None
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def extract_timestamp_from_filename(filename: str) -> Optional[datetime]:
    """
    Extract the creation instant embedded in a filename.

    Returns None when the filename does not follow the convention or the
    embedded date/time is not a real calendar instant.
    """
    match = FILENAME_TIMESTAMP_PATTERN.match(filename)
    if not match:
        return None

    iso = f"{match.group('date')}T{match.group('hour')}:{match.group('minute')}:{match.group('second')}"
    if match.group('millis'):
        iso += f".{match.group('millis')}"
    return parse_iso_timestamp(iso + 'Z')


def resolve_timestamp(
    key: str,
    store_uploaded_at: Optional[Union[datetime, str]] = None,
) -> Optional[datetime]:
    """
    Resolve the creation instant for an object.

    The filename timestamp wins; the store upload time is used only when the
    filename carries no valid timestamp. Returns None if neither source yields
    an instant. Never substitutes the current time.
    """
    filename = key.rsplit('/', 1)[-1]
    from_key = extract_timestamp_from_filename(filename)
    if from_key is not None:
        return from_key

    if isinstance(store_uploaded_at, datetime):
        return _as_utc(store_uploaded_at)
    if isinstance(store_uploaded_at, str):
        return parse_iso_timestamp(store_uploaded_at)
    return None
