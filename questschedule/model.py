"""
Central data model definitions used across the project.

A parsed schedule is a small tree of immutable values:

    ParsedSchedule
    ├── TermInfo        (one header line: "Winter 2026 | Undergraduate | ...")
    └── Course[]        (one per course header line)
        └── ClassSession[]  (one per row of the "Class Nbr" table)

Nothing in the parser or the calendar compiler mutates these objects.
Edits (e.g. fixing a room typo before exporting) produce a NEW schedule
via replace_course() / replace_session().
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Optional, Tuple


class CourseStatus(str, Enum):
    """Enrollment status as printed in the list view."""

    ENROLLED = "Enrolled"
    DROPPED = "Dropped"
    WAITLISTED = "Waitlisted"


# Conventional component codes. Anything else is still accepted.
KNOWN_COMPONENTS: Tuple[str, ...] = ("LEC", "TUT", "LAB", "WRK", "SEM", "PRJ", "TST")


@dataclass(frozen=True)
class TermInfo:
    """
    The academic term the whole schedule belongs to.
    """

    season: str
    year: str
    level: str
    institution: str


@dataclass(frozen=True)
class ClassSession:
    """
    One recurring weekly meeting of a course (a lecture, tutorial, lab, ...).

    days_and_times is kept as the raw text ("TTh 1:00PM - 2:20PM" or "TBA");
    the calendar compiler decodes it later.
    """

    class_number: int
    section: str
    component: str
    days_and_times: str
    room: str
    instructor: str
    start_date: date
    end_date: date


@dataclass(frozen=True)
class Course:
    """
    Represents one registered course and its sessions (in source order).
    """

    course_code: str
    course_name: str
    status: CourseStatus = CourseStatus.ENROLLED
    units: float = 0.0
    grading: str = "Unknown"
    sessions: Tuple[ClassSession, ...] = field(default_factory=tuple)
    grade: Optional[str] = None


@dataclass(frozen=True)
class ParsedSchedule:
    """
    Result of parsing one pasted schedule: the term and its courses in source order.
    """

    term: TermInfo
    courses: Tuple[Course, ...] = field(default_factory=tuple)


def replace_course(schedule: ParsedSchedule, course_index: int, **changes: Any) -> ParsedSchedule:
    """
    Return a copy of the schedule with one course updated.

    Raises IndexError for an unknown course index.
    """
    courses = list(schedule.courses)
    courses[course_index] = replace(courses[course_index], **changes)
    return replace(schedule, courses=tuple(courses))


def replace_session(
    schedule: ParsedSchedule,
    course_index: int,
    session_index: int,
    **changes: Any,
) -> ParsedSchedule:
    """
    Return a copy of the schedule with one session of one course updated.
    """
    course = schedule.courses[course_index]
    sessions = list(course.sessions)
    sessions[session_index] = replace(sessions[session_index], **changes)
    return replace_course(schedule, course_index, sessions=tuple(sessions))
