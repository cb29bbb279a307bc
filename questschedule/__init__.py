"""
Quest class schedule -> iCalendar.

    from questschedule.parse import parse_schedule
    from questschedule.export_ics import compile_schedule

    schedule = parse_schedule(pasted_text)
    result = compile_schedule(schedule)
"""
