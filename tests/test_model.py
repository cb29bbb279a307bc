"""
Unit tests for copy-on-write edits of a parsed schedule.

Edit contract:
- The original schedule is never modified
- Untouched courses / sessions are shared, not copied
"""

import unittest
from dataclasses import FrozenInstanceError
from datetime import date

from questschedule.model import ClassSession, Course, CourseStatus, ParsedSchedule, TermInfo, replace_course, replace_session


def _schedule() -> ParsedSchedule:
    lec = ClassSession(5678, "001", "LEC", "TTh 1:00PM - 2:20PM", "MC 4020", "Jane Doe", date(2026, 1, 5), date(2026, 4, 6))
    tut = ClassSession(5679, "101", "TUT", "TBA", "TBA", "Staff", date(2026, 1, 5), date(2026, 4, 6))
    return ParsedSchedule(
        TermInfo("Winter", "2026", "Undergraduate", "University of Waterloo"),
        (
            Course("CS 484", "Computational Vision", sessions=(lec, tut)),
            Course("PD 1", "Career Fundamentals", status=CourseStatus.WAITLISTED),
        ),
    )


class TestEdits(unittest.TestCase):
    def test_replace_session(self) -> None:
        original = _schedule()
        edited = replace_session(original, 0, 1, days_and_times="W 4:30PM - 5:20PM", room="MC 2038")

        self.assertEqual(edited.courses[0].sessions[1].room, "MC 2038")
        self.assertEqual(original.courses[0].sessions[1].room, "TBA")
        self.assertIs(edited.courses[0].sessions[0], original.courses[0].sessions[0])
        self.assertIs(edited.courses[1], original.courses[1])
        self.assertIs(edited.term, original.term)

    def test_replace_course(self) -> None:
        original = _schedule()
        edited = replace_course(original, 1, status=CourseStatus.ENROLLED, units=0.5)
        self.assertEqual(edited.courses[1].status, CourseStatus.ENROLLED)
        self.assertEqual(edited.courses[1].units, 0.5)
        self.assertEqual(original.courses[1].status, CourseStatus.WAITLISTED)

    def test_bad_index(self) -> None:
        with self.assertRaises(IndexError):
            replace_course(_schedule(), 5, units=1.0)
        with self.assertRaises(IndexError):
            replace_session(_schedule(), 1, 0, room="X")

    def test_values_are_frozen(self) -> None:
        schedule = _schedule()
        with self.assertRaises(FrozenInstanceError):
            schedule.courses[0].units = 1.0  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()
