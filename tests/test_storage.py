"""
Unit tests for input reading and schedule persistence.

Storage contract:
- URL fragment: "schedule=<percent-encoded raw text>", "" when absent/broken
- Saved .html pages are reduced to their visible text
- JSON keeps every field of an (edited) schedule
- A session's dates are edited as one "YYYY-MM-DD - YYYY-MM-DD" string
"""

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from questschedule.model import replace_session
from questschedule.parse import parse_schedule
from questschedule.storage import (
    build_share_url,
    decode_schedule_fragment,
    encode_schedule_fragment,
    html_to_text,
    load_schedule_json,
    read_schedule_text,
    save_schedule_json,
    schedule_from_dict,
    schedule_to_dict,
)


DATA_DIR = Path(__file__).resolve().parent / "data"


class TestFragment(unittest.TestCase):
    def test_encode(self) -> None:
        self.assertEqual(encode_schedule_fragment("Winter 2026 | x\nCS 1"), "schedule=Winter%202026%20%7C%20x%0ACS%201")
        self.assertEqual(encode_schedule_fragment("  \n "), "")

    def test_decode_fragment_and_url(self) -> None:
        text = "Winter 2026 | Undergraduate | University of Waterloo\nCS 484 - Computational Vision"
        fragment = encode_schedule_fragment(text)
        self.assertEqual(decode_schedule_fragment("#" + fragment), text)
        self.assertEqual(decode_schedule_fragment(build_share_url(text, "https://example.org/app#old")), text)

    def test_decode_without_schedule(self) -> None:
        self.assertEqual(decode_schedule_fragment("#view=list"), "")
        self.assertEqual(decode_schedule_fragment("https://example.org/"), "")

    def test_decode_broken_encoding(self) -> None:
        with self.assertLogs("questschedule.storage", level="WARNING"):
            self.assertEqual(decode_schedule_fragment("#schedule=%FF%FE"), "")

    def test_share_url_without_text(self) -> None:
        self.assertEqual(build_share_url("", "https://example.org/app#old"), "https://example.org/app")


class TestReadInput(unittest.TestCase):
    def test_html_to_text(self) -> None:
        html = (
            "<html><head><style>p { color: red; }</style></head><body>"
            "<p>Winter 2026 | Undergraduate | University of Waterloo</p>"
            "<div><span>CS 484 - Computational Vision</span></div>"
            "<script>var x = 1;</script>"
            "</body></html>"
        )
        text = html_to_text(html)
        self.assertNotIn("var x", text)
        self.assertNotIn("color", text)

        schedule = parse_schedule(text)
        self.assertEqual([c.course_code for c in schedule.courses], ["CS 484"])

    def test_read_html_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "schedule.HTML"
            p.write_text("<p>Winter 2026 | Undergraduate | University of Waterloo</p>", encoding="utf-8")
            self.assertEqual(read_schedule_text(p), "Winter 2026 | Undergraduate | University of Waterloo")

    def test_read_text_normalizes_newlines(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "schedule.txt"
            p.write_bytes(b"a\r\nb\rc\n")
            self.assertEqual(read_schedule_text(p), "a\nb\nc\n")

    def test_missing_file_raises(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(OSError):
                read_schedule_text(Path(d) / "missing.txt")


class TestScheduleJson(unittest.TestCase):
    def test_edited_schedule_survives_save_and_load(self) -> None:
        schedule = parse_schedule((DATA_DIR / "schedule_winter_2026.txt").read_text(encoding="utf-8"))
        edited = replace_session(schedule, 0, 1, days_and_times="W 4:30PM - 5:20PM", room="MC 2038")

        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "out" / "schedule.json"
            save_schedule_json(edited, p)

            data = json.loads(p.read_text(encoding="utf-8"))
            self.assertEqual(data["term"]["season"], "Winter")
            self.assertEqual(data["courses"][0]["sessions"][0]["dates"], "2026-01-05 - 2026-04-06")
            self.assertEqual(data["courses"][1]["status"], "Dropped")

            self.assertEqual(load_schedule_json(p), edited)

    def _sample_dict(self) -> dict:
        return schedule_to_dict(parse_schedule((DATA_DIR / "schedule_winter_2026.txt").read_text(encoding="utf-8")))

    def test_hand_edited_dates(self) -> None:
        data = self._sample_dict()
        data["courses"][0]["sessions"][0]["dates"] = "2026-01-12 - 2026-03-30"

        session = schedule_from_dict(data).courses[0].sessions[0]
        self.assertEqual(session.start_date, date(2026, 1, 12))
        self.assertEqual(session.end_date, date(2026, 3, 30))

    def test_invalid_dates_rejected(self) -> None:
        data = self._sample_dict()
        data["courses"][0]["sessions"][0]["dates"] = "12/01/2026 - 30/03/2026"
        with self.assertRaises(ValueError):
            schedule_from_dict(data)

        data["courses"][0]["sessions"][0]["dates"] = "2026-02-30 - 2026-03-30"
        with self.assertRaises(ValueError):
            schedule_from_dict(data)

    def test_separate_date_fields_accepted(self) -> None:
        data = self._sample_dict()
        session = data["courses"][0]["sessions"][0]
        del session["dates"]
        session["start_date"] = "2026-01-05"
        session["end_date"] = "2026-04-06"

        loaded = schedule_from_dict(data).courses[0].sessions[0]
        self.assertEqual((loaded.start_date, loaded.end_date), (date(2026, 1, 5), date(2026, 4, 6)))

    def test_not_a_schedule(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "list.json"
            p.write_text("[]", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_schedule_json(p)


if __name__ == "__main__":
    unittest.main()
