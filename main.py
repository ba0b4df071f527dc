"""
Command-line entry point for inspecting a dentist's day.

Reads appointment records exported from the store as a JSON list and prints
either the slot grid or the admission decision for one booking.

Usage:
    Slot grid:   python main.py grid <dentist_id> <YYYY-MM-DD> <records.json>
    Evaluate:    python main.py evaluate <dentist_id> <YYYY-MM-DD> <HH:MM> <minutes> <records.json>
"""

import json
import sys
from pathlib import Path

from clinic_scheduling.utils import clinic_timezone, local_now

USAGE = __doc__.split("Usage:")[1]


def _load_records(path: str) -> list[dict]:
    records = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON list of appointment records")
    return records


def _run_grid(dentist_id: str, date: str, records_path: str) -> None:
    from clinic_scheduling.tools.availability import check_availability

    result = check_availability(
        dentist_id, date, _load_records(records_path), now=local_now(), tz=clinic_timezone()
    )
    print(result["message"])
    for cell in result["slots"]:
        mark = "free" if cell["available"] else cell.get("reason", "busy")
        print(f"  {cell['time']}  {mark}")


def _run_evaluate(
    dentist_id: str, date: str, time: str, minutes: str, records_path: str
) -> None:
    from clinic_scheduling.schemas.schedule_schema import BookingRequest, DaySchedule
    from clinic_scheduling.scheduling.booking_evaluator import SchedulingService
    from clinic_scheduling.utils import parse_date

    day = parse_date(date)
    if day is None:
        print(f"Unreadable date: {date!r}")
        sys.exit(2)

    schedule = DaySchedule.from_records(
        day, _load_records(records_path), dentist_id=dentist_id, tz=clinic_timezone()
    )
    request = BookingRequest(
        dentist_id=dentist_id, date=date, time=time, duration_minutes=int(minutes)
    )
    decision = SchedulingService().evaluate(request, schedule)
    status = "ADMITTED" if decision.admitted else f"REJECTED ({decision.reason.value})"
    print(f"{status}: {decision.message}")


if __name__ == "__main__":
    mode, args = (sys.argv[1], sys.argv[2:]) if len(sys.argv) > 1 else ("", [])
    if mode == "grid" and len(args) == 3:
        _run_grid(*args)
    elif mode == "evaluate" and len(args) == 5:
        _run_evaluate(*args)
    else:
        print("Usage:" + USAGE)
        sys.exit(2)
