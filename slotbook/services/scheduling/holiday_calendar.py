from datetime import date
from functools import lru_cache
from typing import Iterable, Optional

import holidays

from slotbook.core.exceptions import InvalidScheduleError
from slotbook.schemas.scheduling import DateRange, HolidayException, ScheduleException


class HolidayCalendar:
    """Public holidays of one country, exposed as business-level closures.

    Uses the `holidays` library; ``country_code`` is an ISO 3166 code such as
    "CH" or "IL".
    """

    def __init__(self, country_code: str):
        self.country_code = country_code.upper()
        # Fail early on unsupported countries
        self._holidays_for(date.today().year)

    def _holidays_for(self, year: int) -> holidays.HolidayBase:
        try:
            return _country_holidays(self.country_code, year)
        except NotImplementedError as e:
            raise InvalidScheduleError(
                f"Holiday calendar not available for country {self.country_code}"
            ) from e

    def is_holiday(self, day: date) -> bool:
        return day in self._holidays_for(day.year)

    def get_holiday_name(self, day: date) -> Optional[str]:
        return self._holidays_for(day.year).get(day)

    def exceptions_between(self, date_range: DateRange) -> list[HolidayException]:
        return [
            HolidayException(date=day, reason=self.get_holiday_name(day))
            for day in date_range.days()
            if self.is_holiday(day)
        ]


@lru_cache(maxsize=32)
def _country_holidays(country_code: str, year: int) -> holidays.HolidayBase:
    return holidays.country_holidays(country_code, years=year)


def merge_business_exceptions(
    explicit: Iterable[ScheduleException],
    public_holidays: Iterable[ScheduleException],
) -> list[ScheduleException]:
    """Combine stored business exceptions with public holidays.

    A stored exception on a holiday date replaces the holiday, so a business
    can still open with modified hours on a public holiday.
    """
    explicit = list(explicit)
    explicit_dates = {exception.date for exception in explicit}
    merged = explicit + [
        holiday for holiday in public_holidays if holiday.date not in explicit_dates
    ]
    return sorted(merged, key=lambda exception: exception.date)
