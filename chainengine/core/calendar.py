"""Game calendar used for wait_days comparisons.

The engine only needs a monotonically non-decreasing absolute day number;
this calendar derives it from (day, season, year) with 28-day seasons.
"""
from __future__ import annotations
from enum import Enum

DAYS_PER_SEASON = 28


class Season(Enum):
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"


_SEASON_ORDER = [Season.SPRING, Season.SUMMER, Season.AUTUMN, Season.WINTER]
DAYS_PER_YEAR = DAYS_PER_SEASON * len(_SEASON_ORDER)


class GameCalendar:
    """Day/season/year clock.

    Attributes:
        day: Day within the season, 1-based
        season: Current season
        year: Current year, 1-based
    """

    def __init__(self, day: int = 1, season: Season = Season.SPRING, year: int = 1):
        self.day = day
        self.season = season
        self.year = year

    def get_current_day(self) -> int:
        """Absolute game day: day + season offset + (year - 1) * 112."""
        season_offset = _SEASON_ORDER.index(self.season) * DAYS_PER_SEASON
        return self.day + season_offset + (self.year - 1) * DAYS_PER_YEAR

    def advance_days(self, days: int = 1) -> int:
        """Move the calendar forward, rolling seasons and years over.

        Returns:
            The new absolute day
        """
        if days < 0:
            raise ValueError("The calendar cannot go backwards")
        absolute = self.get_current_day() + days - 1
        self.year = absolute // DAYS_PER_YEAR + 1
        within_year = absolute % DAYS_PER_YEAR
        self.season = _SEASON_ORDER[within_year // DAYS_PER_SEASON]
        self.day = within_year % DAYS_PER_SEASON + 1
        return self.get_current_day()

    def __repr__(self) -> str:
        return f"GameCalendar(day={self.day}, season={self.season.value}, year={self.year})"
