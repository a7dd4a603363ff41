# medapp/services/normalizer.py
"""
Turns raw text-generation output into validated medication drafts.

Two response dialects exist and the caller picks one explicitly:

- ``bullet``: ``MEDICATION:`` sections made of ``- Key: Value`` lines
- ``json``: a JSON array of objects, optionally inside a code fence

Both parsers are all-or-nothing. One bad record fails the whole batch.
Drafts come back without reminders; the scheduler attaches those.
"""
import json
import logging
import re
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from medapp.core.app_config import DIALECT_COURSE_DAYS, DURATION_UNSPECIFIED, MAX_SUMMARY_CHARS
from medapp.schemas.models import Medication, utcnow
from medapp.services.errors import (
    InputValidationError,
    MalformedResponse,
    MissingField,
    NoMedicationsFound,
)

logger = logging.getLogger(__name__)

class Dialect(str, Enum):
    BULLET = "bullet"
    JSON = "json"

SECTION_MARKER = "MEDICATION:"
RECOGNIZED_KEYS = ("name", "dosage", "frequency", "duration", "instructions")
REQUIRED_FIELDS = ("name", "dosage", "frequency")

_BULLET_LINE_RE = re.compile(r"^- ([^:]+): (.+)$")
_CODE_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

def validate_discharge_summary(text: Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise InputValidationError("Discharge summary is required")
    if len(text) > MAX_SUMMARY_CHARS:
        raise InputValidationError(
            f"Discharge summary is too long. Please limit to {MAX_SUMMARY_CHARS} characters."
        )
    return text

def _course_end(dialect: Dialect, start: datetime) -> Optional[datetime]:
    days = DIALECT_COURSE_DAYS.get(dialect.value)
    return start + timedelta(days=days) if days else None

def _missing(fields: Dict[str, Any]) -> List[str]:
    return [f for f in REQUIRED_FIELDS if not fields.get(f)]

# ---------------------------
# Bullet dialect
# ---------------------------
def _parse_section(section: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for line in section.splitlines():
        line = line.strip()
        if not line:
            continue
        m = _BULLET_LINE_RE.match(line)
        if not m:
            continue
        key = m.group(1).strip().lower()
        if key not in RECOGNIZED_KEYS:
            logger.debug("Ignoring unrecognized medication key %r", key)
            continue
        fields[key] = m.group(2).strip()
    return fields

def parse_bullet_response(text: str, now: Optional[datetime] = None) -> List[Medication]:
    start = now or utcnow()
    # anything before the first marker is preamble
    sections = [s for s in (text or "").split(SECTION_MARKER)[1:] if s.strip()]

    meds: List[Medication] = []
    for section in sections:
        fields = _parse_section(section)
        logger.debug("Extracted medication data: %s", fields)

        missing = _missing(fields)
        if missing:
            logger.warning("Missing fields in medication: %s", missing)
            raise MissingField(missing)

        meds.append(Medication(
            name=fields["name"],
            dosage=fields["dosage"],
            frequency=fields["frequency"],
            duration=fields.get("duration") or DURATION_UNSPECIFIED,
            instructions=fields.get("instructions") or "",
            start_date=start,
            end_date=_course_end(Dialect.BULLET, start),
        ))

    if not meds:
        raise NoMedicationsFound()
    return meds

# ---------------------------
# JSON dialect
# ---------------------------
def strip_code_fences(text: str) -> str:
    return _CODE_FENCE_RE.sub("", text or "").strip()

def _as_text(v: Any) -> str:
    if v is None or isinstance(v, (dict, list)):
        return ""
    return str(v).strip()

def parse_json_response(text: str, now: Optional[datetime] = None) -> List[Medication]:
    start = now or utcnow()
    cleaned = strip_code_fences(text)

    try:
        items = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Error parsing model response as JSON: %s", e)
        raise MalformedResponse(f"Failed to parse medication information: {e}", raw_text=text) from e

    if not isinstance(items, list):
        raise MalformedResponse("Response is not an array", raw_text=text)

    meds: List[Medication] = []
    for item in items:
        if not isinstance(item, dict):
            raise MalformedResponse(f"Medication entry is not an object: {item!r}", raw_text=text)

        fields = {k: _as_text(item.get(k)) for k in RECOGNIZED_KEYS}
        missing = _missing(fields)
        if missing:
            logger.warning("Missing fields in medication %s: %s", item, missing)
            raise MissingField(missing, record=item)

        meds.append(Medication(
            name=fields["name"],
            dosage=fields["dosage"],
            frequency=fields["frequency"],
            duration=fields["duration"] or DURATION_UNSPECIFIED,
            instructions=fields["instructions"] or f"Take {fields['dosage']} {fields['frequency']}",
            start_date=start,
            end_date=_course_end(Dialect.JSON, start),
        ))

    if not meds:
        raise NoMedicationsFound()
    return meds

def normalize_response(text: str, dialect: Dialect, now: Optional[datetime] = None) -> List[Medication]:
    dialect = Dialect(dialect)
    if dialect is Dialect.BULLET:
        return parse_bullet_response(text, now=now)
    return parse_json_response(text, now=now)
