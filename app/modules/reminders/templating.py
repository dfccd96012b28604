"""Placeholder substitution for reminder emails.

Templates use ``{{name}}`` markers drawn from a fixed vocabulary. Unknown markers
are rejected when a template is saved and dropped (with a warning) if one slips
through at render time, so raw markers never reach a patient.
"""
import re
import logging
from dataclasses import dataclass, asdict
from datetime import datetime

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")

DEFAULT_REASON = "General consultation"


@dataclass(frozen=True)
class ReminderContext:
    patient_name: str
    appointment_date: str
    appointment_time: str
    duration: str
    reason: str
    patient_id: str


PLACEHOLDERS = frozenset(ReminderContext.__dataclass_fields__)


def format_date(dt: datetime) -> str:
    # Monday, March 10, 2025
    return dt.strftime("%A, %B %d, %Y")


def format_time(dt: datetime) -> str:
    # 2:00 PM
    return dt.strftime("%I:%M %p").lstrip("0")


def build_context(*, first_name: str, last_name: str, patient_code: str, starts_at: datetime, duration_minutes: int, reason: str | None) -> ReminderContext:
    return ReminderContext(
        patient_name=f"{first_name} {last_name}",
        appointment_date=format_date(starts_at),
        appointment_time=format_time(starts_at),
        duration=str(duration_minutes),
        reason=reason or DEFAULT_REASON,
        patient_id=patient_code,
    )


def placeholders(template: str) -> set[str]:
    return set(PLACEHOLDER_RE.findall(template))


def unknown_placeholders(template: str) -> list[str]:
    return sorted(placeholders(template) - PLACEHOLDERS)


def render(template: str, ctx: ReminderContext) -> str:
    values = asdict(ctx)

    def _sub(m: re.Match) -> str:
        key = m.group(1)
        if key in values:
            return values[key]
        logger.warning(f"Dropping unknown placeholder '{{{{{key}}}}}' from reminder template")
        return ""

    return PLACEHOLDER_RE.sub(_sub, template)
