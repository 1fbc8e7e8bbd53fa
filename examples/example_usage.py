"""Example: drive the clock service layer directly, without Flask.

Controllers are thin; every rule lives in ClockService and below.
"""

import importlib

from dotenv import load_dotenv

from config import get_settings_module

from src.timesheet_engine.timesheet_engine.container import build_container


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, timezone=settings.TIMEZONE)
    service = container.clock_service

    state = service.get_status(1)
    print("status:", state.status.value)
    print("today:", service.summarize(state.entry).as_dict())

    sheet = service.get_weekly_timesheet(1, service.today())
    print("week", sheet.week_number, sheet.statistics.as_dict())
    for day in sheet.days:
        print(day.work_date.isoformat(), day.classification.value, day.clocked_hours or "--", day.total_hours)


if __name__ == "__main__":
    main()
