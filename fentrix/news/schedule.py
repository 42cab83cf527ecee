"""
Update schedule helpers.

News runs are aligned to fixed 4-hour UTC boundaries (00, 04, 08, 12, 16, 20).
All datetimes here are naive UTC.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

TIMEFRAMES = [
    (4, "12am-4am"),
    (8, "4am-8am"),
    (12, "8am-12pm"),
    (16, "12pm-4pm"),
    (20, "4pm-8pm"),
    (24, "8pm-12am"),
]

MIN_LEAD_TIME = timedelta(minutes=10)


def timeframe_for(now: datetime) -> str:
    for upper_hour, label in TIMEFRAMES:
        if now.hour < upper_hour:
            return label
    return TIMEFRAMES[-1][1]


def calculate_next_update_time(now: datetime, interval_hours: int = 4) -> datetime:
    """Next interval boundary at least ten minutes ahead of ``now``."""
    next_hour = -(-now.hour // interval_hours) * interval_hours
    candidate = now.replace(minute=0, second=0, microsecond=0)
    if next_hour >= 24:
        candidate = candidate.replace(hour=0) + timedelta(days=1)
    else:
        candidate = candidate.replace(hour=next_hour)

    if candidate <= now or candidate - now < MIN_LEAD_TIME:
        candidate += timedelta(hours=interval_hours)
    return candidate


def time_remaining(target: Optional[datetime], now: datetime) -> Dict[str, int]:
    if target is None:
        total = 0
    else:
        total = max(0, int((target - now).total_seconds()))
    return {
        "hours": total // 3600,
        "minutes": (total % 3600) // 60,
        "seconds": total % 60,
        "totalSeconds": total,
    }


def isoformat_z(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds") + "Z"


def _hour_label(hour: int) -> str:
    suffix = "am" if hour < 12 else "pm"
    return f"{hour % 12 or 12}{suffix}"


def schedule_info(interval_hours: int = 4) -> Dict[str, Any]:
    return {
        "updateTimes": [_hour_label(hour) for hour in range(0, 24, interval_hours)],
        "timezone": "UTC",
        "intervalHours": interval_hours,
    }


@dataclass
class UpdateState:
    """Process-wide timer state. Lost on restart."""

    next_update_time: Optional[datetime] = None
    last_update_time: Optional[datetime] = None
    current_timeframe: Optional[str] = None
    is_processing: bool = False
    interval_hours: int = 4

    def refresh_timeframe(self, now: Optional[datetime] = None) -> str:
        self.current_timeframe = timeframe_for(now or datetime.utcnow())
        return self.current_timeframe

    def schedule_next(self, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.utcnow()
        self.refresh_timeframe(now)
        self.next_update_time = calculate_next_update_time(now, self.interval_hours)
        return self.next_update_time

    def ensure_next_update(self, now: Optional[datetime] = None) -> datetime:
        """
        Next update time for read endpoints. Only initialises an unset time;
        a past time means a run is due and stays until the timer tick handles it.
        """
        if self.next_update_time is None:
            return self.schedule_next(now)
        return self.next_update_time


update_state = UpdateState()
