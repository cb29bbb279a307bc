"""
Parsing (pasted list-view text -> ParsedSchedule).

The input is whatever a student gets by pressing Ctrl+A / Ctrl+C on the
"My Class Schedule" list view. Roughly:

    ...page boilerplate...
    Winter 2026 | Undergraduate | University of Waterloo
    CS 136 - Elementary Algorithm Design and Data Abstraction
    Status  Units  Grading
    Enrolled
    0.50
    Numeric Grading
    Class Nbr  Section  Component  Days & Times  Room  Instructor  Start/End Date
    5678
    001
    LEC
    TTh 1:00PM - 2:20PM
    MC 4020
    Jane Doe
    05/01/2026 - 06/04/2026
    ...

Rules (DO NOT CHANGE):
- Blank lines are dropped before anything else, all offsets refer to the
  trimmed, non-blank lines.
- The term line is mandatory. Missing term line -> ParseError.
- Everything else is best effort: malformed blocks are skipped, never raised.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import date, time
from enum import Enum
from typing import FrozenSet, List, NamedTuple, Optional, Sequence, Tuple

from questschedule.model import ClassSession, Course, CourseStatus, ParsedSchedule, TermInfo


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Patterns & constants
# ---------------------------------------------------------------------------

# "Winter 2026 | Undergraduate | University of Waterloo"
TERM_LINE_RE = re.compile(r"^[A-Z][a-z]+ \d{4} \| .+ \| .+$")

# "CS 136 - Elementary ..." / "PHYS 121L - ..."
COURSE_HEADER_RE = re.compile(r"^([A-Z]{2,10} \d{1,4}[A-Z]?) - (.+)$")

CLASS_NUMBER_RE = re.compile(r"^\d{4,5}$")
COMPONENT_RE = re.compile(r"^[A-Z]{3,4}$")

# Day-first: 05/01/2026 is the 5th of January
QUEST_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")

# Leading number, like "0.50" or ".5"
UNITS_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)")

# "TTh 1:00PM - 2:20PM"
DAYS_AND_TIMES_RE = re.compile(
    r"^([A-Za-z]+)\s+(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*-\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])$"
)

TERM_LINE_ERROR = "Could not find term information line (e.g., 'Winter 2026 | ...')"

STATUS_VALUES = frozenset(s.value for s in CourseStatus)

# Status / units / grading
STATUS_WINDOW = 3

# Class Nbr, Section, Component, Days & Times, Room, Instructor, Start/End Date
SESSION_ROW_LENGTH = 7
MAX_SECTION_LENGTH = 5

TBA = "TBA"

# Two-letter tokens are tried before one-letter ones ("Th" before "T").
# Values are date.weekday() indexes (Monday = 0).
DAY_TOKENS = {
    "M": 0,
    "T": 1,
    "W": 2,
    "Th": 3,
    "F": 4,
    "S": 5,
    "Su": 6,
}


class ParseError(ValueError):
    """Raised when the pasted text has no term information line."""


class DateRange(NamedTuple):
    start: date
    end: date


class DaysAndTimes(NamedTuple):
    days: FrozenSet[int]
    start: time
    end: time


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _parse_quest_date(text: str) -> Optional[date]:
    match = QUEST_DATE_RE.match(text)
    if not match:
        return None
    day, month, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_range(raw: str) -> Optional[DateRange]:
    """
    Parse "DD/MM/YYYY - DD/MM/YYYY" into a DateRange.

    Returns None if there are not exactly two parts or either date is invalid.
    """
    parts = [p.strip() for p in raw.split(" - ")]
    if len(parts) != 2:
        return None

    start = _parse_quest_date(parts[0])
    end = _parse_quest_date(parts[1])
    if start is None or end is None:
        return None

    return DateRange(start, end)


def parse_user_date_range(raw: str) -> Optional[DateRange]:
    """
    Parse a user-edited range "YYYY-MM-DD - YYYY-MM-DD" (ISO dates).
    """
    parts = [p.strip() for p in raw.split(" - ")]
    if len(parts) != 2:
        return None

    try:
        return DateRange(date.fromisoformat(parts[0]), date.fromisoformat(parts[1]))
    except ValueError:
        return None


def _parse_units(text: str) -> Optional[float]:
    match = UNITS_RE.match(text)
    if not match:
        return None
    return float(match.group(0))


def _to_time(hour_s: str, minute_s: str, meridiem: str) -> Optional[time]:
    """
    12-hour clock -> time. 12AM is midnight, 12PM is noon.
    """
    hour = int(hour_s)
    minute = int(minute_s)
    if not (1 <= hour <= 12 and 0 <= minute <= 59):
        return None

    hour = hour % 12
    if meridiem.upper() == "PM":
        hour += 12
    return time(hour, minute)


def _parse_day_tokens(text: str) -> FrozenSet[int]:
    """
    Split compact day notation ("MWF", "TTh", "SSu") into weekday indexes.
    Unknown characters are skipped.
    """
    days = set()
    i = 0
    while i < len(text):
        pair = text[i : i + 2]
        if len(pair) == 2 and pair in DAY_TOKENS:
            days.add(DAY_TOKENS[pair])
            i += 2
            continue
        if text[i] in DAY_TOKENS:
            days.add(DAY_TOKENS[text[i]])
        i += 1
    return frozenset(days)


def parse_days_and_times(raw: str) -> Optional[DaysAndTimes]:
    """
    Parse "TTh 1:00PM - 2:20PM" into ({1, 3}, 13:00, 14:20).

    Returns None for "TBA" or anything that does not split into day tokens
    plus a 12-hour time range. The returned day set may be empty when the
    shape matched but no letter was a known day token.
    """
    text = raw.strip()
    if text == TBA:
        return None

    match = DAYS_AND_TIMES_RE.match(text)
    if not match:
        return None

    day_text, sh, sm, smer, eh, em, emer = match.groups()
    start = _to_time(sh, sm, smer)
    end = _to_time(eh, em, emer)
    if start is None or end is None:
        return None

    return DaysAndTimes(_parse_day_tokens(day_text), start, end)


def parse_term_line(line: str) -> TermInfo:
    season_year, level, institution = line.split(" | ")[:3]
    season, year = season_year.split(" ", 1)
    return TermInfo(season=season, year=year, level=level, institution=institution)


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------


class LineKind(Enum):
    COURSE_HEADER = "course_header"
    STATUS_HEADER = "status_header"
    SESSION_HEADER = "session_header"
    CLASS_NUMBER = "class_number"
    OTHER = "other"


def classify_line(line: str) -> LineKind:
    """
    Classify one trimmed line. Patterns are tested in priority order.

    This does not look at parser state: a CLASS_NUMBER line only starts a
    session row while a session table is open.
    """
    if COURSE_HEADER_RE.match(line):
        return LineKind.COURSE_HEADER
    if line.startswith("Status") and "Units" in line and "Grading" in line:
        return LineKind.STATUS_HEADER
    if line.startswith("Class Nbr") and "Section" in line:
        return LineKind.SESSION_HEADER
    if CLASS_NUMBER_RE.match(line):
        return LineKind.CLASS_NUMBER
    return LineKind.OTHER


# ---------------------------------------------------------------------------
# Status block
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusPatch:
    """
    Result of reading the lines after a "Status Units Grading" header.

    consumed is the number of lines taken from the window.
    """

    status: Optional[CourseStatus] = None
    units: Optional[float] = None
    grading: Optional[str] = None
    consumed: int = 0

    def apply(self, course: Course) -> Course:
        changes = {}
        if self.status is not None:
            changes["status"] = self.status
        if self.units is not None:
            changes["units"] = self.units
        if self.grading is not None:
            changes["grading"] = self.grading
        return replace(course, **changes)


def extract_status_patch(window: Sequence[str]) -> StatusPatch:
    """
    Read status, units and grading from up to STATUS_WINDOW lines.

    Each step either accepts its line (and moves on) or leaves it for the
    next step. Grading is free text, so it is only taken after a units value
    was recognized.
    """
    pos = 0
    status: Optional[CourseStatus] = None
    units: Optional[float] = None
    grading: Optional[str] = None

    if pos < len(window) and window[pos] in STATUS_VALUES:
        status = CourseStatus(window[pos])
        pos += 1

    if pos < len(window):
        units = _parse_units(window[pos])
        if units is not None:
            pos += 1
            if pos < len(window):
                grading = window[pos]
                pos += 1

    return StatusPatch(status=status, units=units, grading=grading, consumed=pos)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParserState:
    """
    NoCourse:  course is None
    InCourse:  course is set, in_session_block tells whether a "Class Nbr"
               table header was seen since the course header.
    """

    course: Optional[Course] = None
    in_session_block: bool = False
    courses: Tuple[Course, ...] = ()

    def _flushed(self) -> Tuple[Course, ...]:
        if self.course is not None and self.course.course_code:
            return self.courses + (self.course,)
        return self.courses

    def start_course(self, code: str, name: str) -> ParserState:
        return ParserState(
            course=Course(course_code=code, course_name=name),
            in_session_block=False,
            courses=self._flushed(),
        )

    def apply_status(self, patch: StatusPatch) -> ParserState:
        if self.course is None:
            return self
        return replace(self, course=patch.apply(self.course))

    def open_session_block(self) -> ParserState:
        return replace(self, in_session_block=True)

    def add_session(self, session: ClassSession) -> ParserState:
        if self.course is None:
            return self
        course = replace(self.course, sessions=self.course.sessions + (session,))
        return replace(self, course=course)

    def finish(self) -> Tuple[Course, ...]:
        return self._flushed()


def _prepare_lines(raw_text: str) -> List[str]:
    text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
    return [line.strip() for line in text.split("\n") if line.strip()]


def _find_term_line(lines: Sequence[str]) -> Optional[int]:
    for i, line in enumerate(lines):
        if TERM_LINE_RE.match(line):
            return i
    return None


def _read_session_row(
    lines: Sequence[str],
    index: int,
    course_code: str,
    diagnostics: Optional[List[str]],
) -> Optional[ClassSession]:
    """
    Try to read the 7-line session record starting at lines[index].
    Returns None if the lines do not look like a session row.
    """
    if index + SESSION_ROW_LENGTH - 1 >= len(lines):
        return None

    class_nbr, section, component, days_and_times, room, instructor, dates = lines[
        index : index + SESSION_ROW_LENGTH
    ]

    if len(section) > MAX_SECTION_LENGTH or not COMPONENT_RE.match(component):
        return None

    date_range = parse_date_range(dates)
    if date_range is None:
        message = f"Invalid date range for session {int(class_nbr)} in course {course_code}: {dates}"
        logger.warning(message)
        if diagnostics is not None:
            diagnostics.append(message)
        return None

    return ClassSession(
        class_number=int(class_nbr),
        section=section,
        component=component,
        days_and_times=days_and_times,
        room=room,
        instructor=instructor,
        start_date=date_range.start,
        end_date=date_range.end,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_schedule(raw_text: str, diagnostics: Optional[List[str]] = None) -> ParsedSchedule:
    """
    Parse pasted list-view text into a ParsedSchedule.

    Raises ParseError if no term information line is found. Non-fatal
    problems (currently: sessions with an unreadable date range) are logged
    and, if a list is passed, appended to diagnostics.
    """
    lines = _prepare_lines(raw_text)

    term_index = _find_term_line(lines)
    if term_index is None:
        raise ParseError(TERM_LINE_ERROR)

    term = parse_term_line(lines[term_index])
    logger.debug("term line %d: %s", term_index, lines[term_index])

    state = ParserState()
    i = term_index + 1
    while i < len(lines):
        line = lines[i]
        header = COURSE_HEADER_RE.match(line)
        if header:
            state = state.start_course(header.group(1), header.group(2))
            i += 1
            continue

        kind = classify_line(line)

        # Everything before the first course header is ignored
        if state.course is None:
            i += 1
            continue

        if kind is LineKind.STATUS_HEADER:
            patch = extract_status_patch(lines[i + 1 : i + 1 + STATUS_WINDOW])
            state = state.apply_status(patch)
            i += 1 + patch.consumed
            continue

        if kind is LineKind.SESSION_HEADER:
            state = state.open_session_block()
            i += 1
            continue

        if kind is LineKind.CLASS_NUMBER and state.in_session_block:
            session = _read_session_row(lines, i, state.course.course_code, diagnostics)
            if session is not None:
                state = state.add_session(session)
                i += SESSION_ROW_LENGTH
                continue

        i += 1

    courses = state.finish()
    logger.debug("parsed %d courses", len(courses))
    return ParsedSchedule(term=term, courses=courses)
