"""
Simulation Time Manager
=======================

Discrete simulation clock. The clock advances in whole ticks of fixed length.
"""

from datetime import datetime, timedelta


class SimulationTime:
    """
    Manages simulation time.

    Provides:
    - Monotonic tick counter
    - Elapsed time in days
    - Epoch and Julian date conversions
    """

    def __init__(self,
                 start_time: datetime = None,
                 tick_length_days: float = 1.0):
        """
        Initialize simulation time.

        Args:
            start_time: Simulation epoch (UTC)
            tick_length_days: Length of one tick in days
        """
        self.start_time = start_time or datetime(2000, 1, 1, 0, 0, 0)
        self.tick_length_days = tick_length_days
        self.tick = 0

    def reset(self):
        """Reset simulation time to the epoch."""
        self.tick = 0

    def step(self) -> int:
        """
        Advance time by one tick.

        Returns:
            Current tick
        """
        self.tick += 1
        return self.tick

    @property
    def elapsed_days(self) -> float:
        """Simulated days since the epoch."""
        return self.tick * self.tick_length_days

    @property
    def current_utc(self) -> datetime:
        """Get current UTC time."""
        return self.start_time + timedelta(days=self.elapsed_days)

    @property
    def julian_date(self) -> float:
        """Julian Date for the current tick."""
        return self.datetime_to_jd(self.current_utc)

    @staticmethod
    def datetime_to_jd(dt: datetime) -> float:
        """
        Convert datetime to Julian Date.

        Args:
            dt: datetime object

        Returns:
            Julian Date
        """
        year = dt.year
        month = dt.month
        day = dt.day
        hour = dt.hour
        minute = dt.minute
        second = dt.second + dt.microsecond / 1e6

        if month <= 2:
            year -= 1
            month += 12

        A = int(year / 100)
        B = 2 - A + int(A / 4)

        jd = int(365.25 * (year + 4716)) + \
             int(30.6001 * (month + 1)) + \
             day + B - 1524.5 + \
             (hour + minute / 60 + second / 3600) / 24

        return jd

    def __repr__(self) -> str:
        return f"SimulationTime(tick={self.tick}, elapsed={self.elapsed_days:.3f}d)"
