"""
iCalendar (.ics) export.

Each class session becomes ONE recurring weekly event:
- DTSTART/DTEND: the first meeting on or after the session's start date
- RRULE: FREQ=WEEKLY, on the session's days, until its end date (inclusive)

Sessions that cannot be placed on a calendar (time "TBA", unreadable
"Days & Times") are skipped and reported as warnings. The resulting file
can be imported into Google Calendar, Outlook or Apple Calendar.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import FrozenSet, NamedTuple, Optional, Tuple

from questschedule.model import ClassSession, Course, ParsedSchedule, TermInfo
from questschedule.parse import TBA, parse_days_and_times


logger = logging.getLogger(__name__)


PRODID = "-//Quest Schedule Exporter//EN"
UID_DOMAIN = "quest-schedule-exporter"

DEFAULT_SUMMARY_TEMPLATE = "@code @type in @location"
DEFAULT_DESCRIPTION_TEMPLATE = "@code-@section: @name (@type) in @location with @prof"

# Indexed by date.weekday()
ICS_DAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

# RFC 5545: lines SHOULD NOT be longer than 75 octets
MAX_LINE_OCTETS = 75


@dataclass(frozen=True)
class CompileResult:
    document: bytes
    warnings: Tuple[str, ...]
    event_count: int = 0


class SessionEvent(NamedTuple):
    """VEVENT lines for one session, or the warning explaining the skip."""

    lines: Tuple[str, ...] = ()
    warning: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS TEXT values.
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _fold(line: str) -> str:
    """
    Fold a content line into chunks of at most 75 octets (continuation lines
    start with a single space). Never splits a UTF-8 character.
    """
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line

    chunks: list[str] = []
    current = ""
    limit = MAX_LINE_OCTETS
    for ch in line:
        if len((current + ch).encode("utf-8")) > limit:
            chunks.append(current)
            current = ch
            # continuation lines lose one octet to the leading space
            limit = MAX_LINE_OCTETS - 1
        else:
            current += ch
    chunks.append(current)
    return "\r\n ".join(chunks)


def _dt_local(value: datetime) -> str:
    """
    Floating local date-time 'YYYYMMDDTHHMMSS' (no timezone).
    """
    return value.strftime("%Y%m%dT%H%M%S")


def apply_template(template: str, course: Course, session: ClassSession) -> str:
    """
    Replace @code, @section, @name, @type, @location and @prof.

    Single pass over the template, so a substituted value is never scanned
    again. Unknown "@..." words are left as they are.
    """
    values = {
        "@code": course.course_code,
        "@section": session.section,
        "@name": course.course_name,
        "@type": session.component,
        "@location": session.room,
        "@prof": session.instructor,
    }
    # longest first, so no token can shadow a longer one
    tokens = sorted(values, key=len, reverse=True)

    out: list[str] = []
    i = 0
    while i < len(template):
        if template[i] == "@":
            for token in tokens:
                if template.startswith(token, i):
                    out.append(values[token])
                    i += len(token)
                    break
            else:
                out.append("@")
                i += 1
        else:
            out.append(template[i])
            i += 1
    return "".join(out)


def first_occurrence(start_date: date, days: FrozenSet[int]) -> date:
    """
    First date on or after start_date whose weekday is in days.
    """
    offset = min((day - start_date.weekday()) % 7 for day in days)
    return start_date + timedelta(days=offset)


def schedule_filename(term: TermInfo) -> str:
    return f"schedule_{term.season.lower()}_{term.year}.ics"


def _skip_message(course: Course, session: ClassSession, reason: str) -> str:
    return f"Skipped {course.course_code} ({session.component}): {reason}"


# ---------------------------------------------------------------------------
# Event building
# ---------------------------------------------------------------------------


def _session_event(
    course: Course,
    session: ClassSession,
    summary_template: str,
    description_template: str,
    dtstamp: str,
) -> SessionEvent:
    """
    Build the VEVENT lines for one session.

    Returns a SessionEvent with the lines, or with only a warning if skipped.
    """
    if session.days_and_times == TBA:
        return SessionEvent(warning=_skip_message(course, session, "Time is TBA"))

    pattern = parse_days_and_times(session.days_and_times)
    if pattern is None:
        return SessionEvent(
            warning=_skip_message(course, session, f'Could not parse days and times "{session.days_and_times}"')
        )

    if not pattern.days:
        return SessionEvent(
            warning=_skip_message(course, session, f'No valid days found in "{session.days_and_times}"')
        )

    first_day = first_occurrence(session.start_date, pattern.days)
    event_start = datetime.combine(first_day, pattern.start)
    event_end = datetime.combine(first_day, pattern.end)

    # Crosses midnight
    if event_end < event_start:
        event_end += timedelta(days=1)

    # UNTIL is inclusive: last possible second of the end date
    until = datetime.combine(session.end_date, time(23, 59, 59))
    by_day = ",".join(ICS_DAY_CODES[d] for d in sorted(pattern.days))

    uid = f"{course.course_code}-{session.class_number}@{UID_DOMAIN}"
    summary = apply_template(summary_template, course, session)
    description = apply_template(description_template, course, session)

    lines = [
        "BEGIN:VEVENT",
        f"UID:{_ics_escape(uid)}",
        f"DTSTAMP:{dtstamp}",
        f"DTSTART:{_dt_local(event_start)}",
        f"DTEND:{_dt_local(event_end)}",
        f"SUMMARY:{_ics_escape(summary)}",
        f"DESCRIPTION:{_ics_escape(description)}",
        f"LOCATION:{_ics_escape(session.room)}",
        f"RRULE:FREQ=WEEKLY;UNTIL={_dt_local(until)};BYDAY={by_day}",
        "END:VEVENT",
    ]
    return SessionEvent(lines=tuple(lines))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compile_schedule(
    schedule: ParsedSchedule,
    summary_template: str = DEFAULT_SUMMARY_TEMPLATE,
    description_template: str = DEFAULT_DESCRIPTION_TEMPLATE,
    now: Optional[datetime] = None,
) -> CompileResult:
    """
    Compile a schedule into an ICS document plus a list of warnings.

    Never raises for bad sessions: they are left out and reported in
    warnings. With no exportable session the result is an empty (but valid)
    calendar.
    """
    stamp_time = now if now is not None else datetime.now(timezone.utc)
    dtstamp = stamp_time.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append(f"PRODID:{PRODID}")
    lines.append("CALSCALE:GREGORIAN")

    warnings: list[str] = []
    count = 0
    for course in schedule.courses:
        for session in course.sessions:
            event = _session_event(course, session, summary_template, description_template, dtstamp)
            if event.warning is not None:
                logger.info(event.warning)
                warnings.append(event.warning)
                continue
            lines.extend(event.lines)
            count += 1

    lines.append("END:VCALENDAR")
    logger.debug("compiled %d events, %d warnings", count, len(warnings))

    # ICS standard uses CRLF
    text = "\r\n".join(_fold(line) for line in lines) + "\r\n"
    return CompileResult(document=text.encode("utf-8"), warnings=tuple(warnings), event_count=count)


def export_schedule_to_ics(
    schedule: ParsedSchedule,
    out_path: str | Path,
    summary_template: str = DEFAULT_SUMMARY_TEMPLATE,
    description_template: str = DEFAULT_DESCRIPTION_TEMPLATE,
    result: Optional[CompileResult] = None,
) -> CompileResult:
    """
    Compile the schedule and write the .ics file. Returns the CompileResult.

    Pass result to write an already compiled calendar (e.g. after the
    caller has looked at its warnings); the templates are then unused.
    """
    if result is None:
        result = compile_schedule(schedule, summary_template, description_template)

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(result.document)
    return result
