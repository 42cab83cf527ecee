from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Response

from ...news.schedule import UpdateState, isoformat_z, schedule_info, time_remaining
from ..dependencies import get_update_state

router = APIRouter()

SHORT_TIMER_SECONDS = 300


def _clock(value: datetime, with_seconds: bool = False) -> str:
    """12-hour UTC clock text such as '4:05 PM'."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    if with_seconds:
        return f"{hour}:{value.minute:02d}:{value.second:02d} {suffix}"
    return f"{hour}:{value.minute:02d} {suffix}"


@router.get("/timer")
async def get_timer(response: Response, state: UpdateState = Depends(get_update_state)):
    """Countdown to the next scheduled news update"""
    response.headers["Cache-Control"] = "public, max-age=60"

    now = datetime.utcnow()
    timeframe = state.refresh_timeframe(now)
    next_update = state.ensure_next_update(now)

    return {
        "currentTime": isoformat_z(now),
        "currentTimeReadable": _clock(now, with_seconds=True),
        "currentTimeFrame": timeframe,
        "nextUpdateTime": isoformat_z(next_update),
        "nextUpdateReadable": _clock(next_update),
        "lastUpdateTime": isoformat_z(state.last_update_time),
        "lastUpdateReadable": _clock(state.last_update_time) if state.last_update_time else "Not yet updated",
        "timeRemaining": time_remaining(next_update, now),
        "isProcessingNews": state.is_processing,
        "updateStatus": "in_progress" if state.is_processing else "waiting",
        "schedule": schedule_info(state.interval_hours),
    }


@router.get("/timer-short")
async def get_short_timer():
    now = datetime.utcnow()
    return {
        "timer": {
            "duration": SHORT_TIMER_SECONDS,
            "start": isoformat_z(now),
            "end": isoformat_z(now + timedelta(seconds=SHORT_TIMER_SECONDS)),
            "status": "active",
        },
        "meta": {"serverTime": isoformat_z(now)},
    }
