"""
Verification hash for issued certificates.

The hashed fields and their order are fixed here, not taken from dict/row iteration order:
the same values must give the same hash in any process, on any day.
"""
from __future__ import annotations

import hashlib
import hmac
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

CERTIFICATE_FIELDS: tuple[str, ...] = (
    "certificate_id",
    "student_id",
    "course_id",
    "student_name",
    "course_title",
    "instructor_name",
    "completion_date",
    "date_issued",
    "total_lessons",
    "completed_lessons",
    "completion_percentage",
    "platform_name",
)


def _normalize(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        # naive values come back from SQLite; stored values are always UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value.normalize())
    return str(value)


def canonical_payload(fields: Mapping[str, Any]) -> bytes:
    """[[name, value], ...] in CERTIFICATE_FIELDS order. KeyError if a field is missing."""
    pairs = [[name, _normalize(fields[name])] for name in CERTIFICATE_FIELDS]
    return json.dumps(pairs, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def fingerprint(fields: Mapping[str, Any], secret: str = "") -> str:
    payload = canonical_payload(fields)
    if secret:
        return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return hashlib.sha256(payload).hexdigest()


def record_fields(record: Any) -> dict[str, Any]:
    return {name: getattr(record, name) for name in CERTIFICATE_FIELDS}


def verify(record: Any, secret: str = "") -> bool:
    """Recompute over the record's current fields and compare with its stored hash."""
    stored = getattr(record, "verification_hash", None) or ""
    expected = fingerprint(record_fields(record), secret)
    return hmac.compare_digest(stored, expected)
