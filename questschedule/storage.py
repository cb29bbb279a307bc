"""
Reading input and persisting schedules.

Three small jobs, none of them touch the parsing rules:

- read_schedule_text(): load the pasted text from a file. A saved copy of the
  list-view page (.html / .htm) works too: its visible text is extracted.
- encode/decode_schedule_fragment(): keep the raw pasted text in a URL
  fragment ("#schedule=...") so a schedule can be shared as a link.
- save/load_schedule_json(): store an (edited) schedule as JSON so it can be
  exported later without re-parsing.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote, urlsplit

from bs4 import BeautifulSoup

from questschedule.model import ClassSession, Course, CourseStatus, ParsedSchedule, TermInfo
from questschedule.parse import DateRange, parse_user_date_range


logger = logging.getLogger(__name__)


FRAGMENT_PREFIX = "schedule="
HTML_SUFFIXES = (".html", ".htm")


# ---------------------------------------------------------------------------
# Input text
# ---------------------------------------------------------------------------


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def html_to_text(html: str) -> str:
    """
    Extract the visible text of a saved page, one block per line.
    """
    soup = BeautifulSoup(html, "html.parser")

    # Scripts and styles are not part of what the user would have copied
    for tag in soup(["script", "style"]):
        tag.decompose()

    return soup.get_text("\n", strip=True)


def read_schedule_text(path: str | Path) -> str:
    """
    Read the schedule text from a file (UTF-8). Raises OSError if unreadable.
    """
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in HTML_SUFFIXES:
        text = html_to_text(text)
    return normalize_newlines(text)


# ---------------------------------------------------------------------------
# URL fragment
# ---------------------------------------------------------------------------


def encode_schedule_fragment(text: str) -> str:
    """
    Return "schedule=<percent-encoded text>", or "" for blank input.
    """
    if not text.strip():
        return ""
    return FRAGMENT_PREFIX + quote(text, safe="")


def decode_schedule_fragment(value: str) -> str:
    """
    Decode a fragment (with or without '#') or a full URL back to the raw
    text. Returns "" if there is no schedule in it.
    """
    fragment = value.strip()
    if "://" in fragment:
        fragment = urlsplit(fragment).fragment
    fragment = fragment.lstrip("#")

    if not fragment.startswith(FRAGMENT_PREFIX):
        return ""

    try:
        return unquote(fragment[len(FRAGMENT_PREFIX) :], errors="strict")
    except UnicodeDecodeError:
        logger.warning("Failed to decode schedule from URL")
        return ""


def build_share_url(text: str, base_url: str) -> str:
    fragment = encode_schedule_fragment(text)
    base = base_url.split("#", 1)[0]
    return f"{base}#{fragment}" if fragment else base


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def schedule_to_dict(schedule: ParsedSchedule) -> dict[str, Any]:
    """
    Plain JSON-compatible dict. A session's dates are one editable
    "YYYY-MM-DD - YYYY-MM-DD" string.
    """
    return {
        "term": {
            "season": schedule.term.season,
            "year": schedule.term.year,
            "level": schedule.term.level,
            "institution": schedule.term.institution,
        },
        "courses": [
            {
                "course_code": c.course_code,
                "course_name": c.course_name,
                "status": c.status.value,
                "units": c.units,
                "grading": c.grading,
                "grade": c.grade,
                "sessions": [
                    {
                        "class_number": s.class_number,
                        "section": s.section,
                        "component": s.component,
                        "days_and_times": s.days_and_times,
                        "room": s.room,
                        "instructor": s.instructor,
                        "dates": f"{s.start_date.isoformat()} - {s.end_date.isoformat()}",
                    }
                    for s in c.sessions
                ],
            }
            for c in schedule.courses
        ],
    }


def _session_dates(s: dict[str, Any]) -> DateRange:
    """
    Read a session's "dates" range. Separate "start_date" / "end_date"
    fields are accepted too.
    """
    if "dates" not in s:
        return DateRange(date.fromisoformat(s["start_date"]), date.fromisoformat(s["end_date"]))

    dates = parse_user_date_range(str(s["dates"]))
    if dates is None:
        raise ValueError(f"Invalid dates (expected YYYY-MM-DD - YYYY-MM-DD): {s['dates']}")
    return dates


def schedule_from_dict(data: dict[str, Any]) -> ParsedSchedule:
    """
    Inverse of schedule_to_dict(). Raises KeyError / ValueError on bad data.
    """
    term = TermInfo(**{k: str(data["term"][k]) for k in ("season", "year", "level", "institution")})

    courses = []
    for c in data.get("courses", []):
        sessions = []
        for s in c.get("sessions", []):
            dates = _session_dates(s)
            sessions.append(
                ClassSession(
                    class_number=int(s["class_number"]),
                    section=str(s["section"]),
                    component=str(s["component"]),
                    days_and_times=str(s["days_and_times"]),
                    room=str(s["room"]),
                    instructor=str(s["instructor"]),
                    start_date=dates.start,
                    end_date=dates.end,
                )
            )
        courses.append(
            Course(
                course_code=str(c["course_code"]),
                course_name=str(c["course_name"]),
                status=CourseStatus(c.get("status", CourseStatus.ENROLLED.value)),
                units=float(c.get("units", 0)),
                grading=str(c.get("grading", "Unknown")),
                sessions=tuple(sessions),
                grade=c.get("grade"),
            )
        )

    return ParsedSchedule(term=term, courses=tuple(courses))


def save_schedule_json(schedule: ParsedSchedule, path: str | Path) -> None:
    """
    Write the schedule to a JSON file. Creates parent directories if needed.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(schedule_to_dict(schedule), indent=2, ensure_ascii=False), encoding="utf-8")


def load_schedule_json(path: str | Path) -> ParsedSchedule:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Not a schedule file: {path}")
    return schedule_from_dict(data)
