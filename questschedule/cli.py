"""
CLI (Command Line Interface).

Typical workflow:

    questschedule show schedule.txt            # check what was recognized
    questschedule export schedule.txt          # -> schedule_winter_2026.ics
    questschedule dump schedule.txt out.json   # edit out.json by hand ...
    questschedule export out.json              # ... then export the edited copy
    questschedule link schedule.txt            # shareable URL with the raw text
    questschedule unlink "<url>"               # and back

INPUT is the copy-pasted list view (plain text), a saved copy of the page
(.html / .htm), or a schedule previously written by `dump` (.json).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from questschedule.export_ics import (
    DEFAULT_DESCRIPTION_TEMPLATE,
    DEFAULT_SUMMARY_TEMPLATE,
    compile_schedule,
    export_schedule_to_ics,
    schedule_filename,
)
from questschedule.model import KNOWN_COMPONENTS, ParsedSchedule
from questschedule.parse import ParseError, parse_schedule
from questschedule.storage import (
    build_share_url,
    decode_schedule_fragment,
    load_schedule_json,
    read_schedule_text,
    save_schedule_json,
)


console = Console()

DEFAULT_BASE_URL = "https://quest-schedule-exporter.local/"


def _println(msg: str = "") -> None:
    console.print(msg, soft_wrap=True)


def _load_schedule(path: str, diagnostics: list[str]) -> ParsedSchedule:
    """
    Load a schedule from INPUT. Raises OSError, ParseError or ValueError.
    """
    if Path(path).suffix.lower() == ".json":
        try:
            return load_schedule_json(path)
        except KeyError as exc:
            raise ValueError(f"Missing field in schedule file: {exc}") from exc
    return parse_schedule(read_schedule_text(path), diagnostics)


def _load_or_report(path: str) -> ParsedSchedule | None:
    diagnostics: list[str] = []
    try:
        schedule = _load_schedule(path, diagnostics)
    except ParseError as exc:
        _println(f"[red]Error:[/] {escape(str(exc))}")
        return None
    except (OSError, ValueError) as exc:
        _println(f"[red]Could not read {escape(path)}:[/] {escape(str(exc))}")
        return None

    for msg in diagnostics:
        _println(f"[yellow]Note:[/] {escape(msg)}")
    return schedule


def _cmd_show(args: argparse.Namespace) -> int:
    """
    Print the recognized term, courses and sessions.
    """
    schedule = _load_or_report(args.input)
    if schedule is None:
        return 1

    term = schedule.term
    _println(f"[bold]{escape(term.season)} {escape(term.year)}[/] | {escape(term.level)} | {escape(term.institution)}")

    if not schedule.courses:
        _println("No courses found.")
        return 0

    for course in schedule.courses:
        table = Table(
            title=f"{escape(course.course_code)} - {escape(course.course_name)}",
            caption=f"{course.status.value} | {course.units:g} units | {escape(course.grading)}",
            box=box.SIMPLE,
        )
        table.add_column("Class Nbr", justify="right")
        table.add_column("Section")
        table.add_column("Component")
        table.add_column("Days & Times")
        table.add_column("Room")
        table.add_column("Instructor")
        table.add_column("Dates")
        for s in course.sessions:
            table.add_row(
                str(s.class_number),
                escape(s.section),
                escape(s.component),
                escape(s.days_and_times),
                escape(s.room),
                escape(s.instructor),
                f"{s.start_date.isoformat()} - {s.end_date.isoformat()}",
            )
        console.print(table)

        if not course.sessions:
            _println(f"[yellow]{escape(course.course_code)} has no class sessions.[/]")

        for s in course.sessions:
            if s.component not in KNOWN_COMPONENTS:
                _println(
                    f"[yellow]{escape(course.course_code)} class {s.class_number}: "
                    f"unusual component {escape(s.component)}.[/]"
                )

    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    """
    Write the schedule as an .ics file.
    """
    schedule = _load_or_report(args.input)
    if schedule is None:
        return 1

    result = compile_schedule(schedule, args.summary, args.description)

    for w in result.warnings:
        _println(f"[yellow]Warning:[/] {escape(w)}")

    if result.warnings and args.strict:
        _println("Not writing calendar (--strict and there are warnings).")
        return 1

    out = Path(args.out) if args.out else Path(schedule_filename(schedule.term))
    try:
        export_schedule_to_ics(schedule, out, result=result)
    except OSError as exc:
        _println(f"[red]Could not write {escape(str(out))}:[/] {escape(str(exc))}")
        return 1

    _println(f"Exported {result.event_count} events to: {escape(str(out))}")
    return 0


def _cmd_dump(args: argparse.Namespace) -> int:
    """
    Write the parsed schedule as editable JSON.
    """
    schedule = _load_or_report(args.input)
    if schedule is None:
        return 1

    try:
        save_schedule_json(schedule, args.out)
    except OSError as exc:
        _println(f"[red]Could not write {escape(args.out)}:[/] {escape(str(exc))}")
        return 1

    _println(f"Wrote {len(schedule.courses)} courses to: {escape(args.out)}")
    return 0


def _cmd_link(args: argparse.Namespace) -> int:
    try:
        text = read_schedule_text(args.input)
    except OSError as exc:
        _println(f"[red]Could not read {escape(args.input)}:[/] {escape(str(exc))}")
        return 1

    if not text.strip():
        _println("Input is empty.")
        return 1

    # plain print: the URL must not be wrapped or styled
    print(build_share_url(text, args.base_url))
    return 0


def _cmd_unlink(args: argparse.Namespace) -> int:
    text = decode_schedule_fragment(args.url)
    if not text:
        _println("No schedule found in URL.")
        return 1

    if args.out:
        try:
            Path(args.out).write_text(text, encoding="utf-8")
        except OSError as exc:
            _println(f"[red]Could not write {escape(args.out)}:[/] {escape(str(exc))}")
            return 1
        _println(f"Wrote schedule text to: {escape(args.out)}")
    else:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="questschedule", description="Quest class schedule -> iCalendar")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_show = sub.add_parser("show", help="Show the parsed schedule")
    p_show.add_argument("input", type=str, help="Pasted text, saved .html page, or .json schedule")

    p_export = sub.add_parser("export", help="Export the schedule to .ics")
    p_export.add_argument("input", type=str, help="Pasted text, saved .html page, or .json schedule")
    p_export.add_argument("-o", "--out", type=str, default="", help="Output file (default: schedule_<season>_<year>.ics)")
    p_export.add_argument("--summary", type=str, default=DEFAULT_SUMMARY_TEMPLATE, help="Event title template")
    p_export.add_argument(
        "--description", type=str, default=DEFAULT_DESCRIPTION_TEMPLATE, help="Event description template"
    )
    p_export.add_argument("--strict", action="store_true", help="Do not write the file if any session was skipped")

    p_dump = sub.add_parser("dump", help="Write the parsed schedule as JSON (for editing)")
    p_dump.add_argument("input", type=str, help="Pasted text or saved .html page")
    p_dump.add_argument("out", type=str, help="Output .json path")

    p_link = sub.add_parser("link", help="Print a shareable URL containing the pasted text")
    p_link.add_argument("input", type=str, help="Pasted text or saved .html page")
    p_link.add_argument("--base-url", type=str, default=DEFAULT_BASE_URL, help="URL to attach the fragment to")

    p_unlink = sub.add_parser("unlink", help="Recover the pasted text from a shared URL")
    p_unlink.add_argument("url", type=str, help="URL or '#schedule=...' fragment")
    p_unlink.add_argument("-o", "--out", type=str, default="", help="Write text to this file instead of stdout")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "show":
        raise SystemExit(_cmd_show(args))
    if args.command == "export":
        raise SystemExit(_cmd_export(args))
    if args.command == "dump":
        raise SystemExit(_cmd_dump(args))
    if args.command == "link":
        raise SystemExit(_cmd_link(args))
    if args.command == "unlink":
        raise SystemExit(_cmd_unlink(args))

    raise SystemExit(2)
