from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional


@dataclass
class ExpiringCache:
    """A single cached value with its refresh and expiry times.

    Expired values are kept so callers can serve stale data when a refresh fails.
    """

    ttl_seconds: float
    data: Any = None
    updated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @property
    def has_data(self) -> bool:
        return self.data is not None

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.utcnow()
        return self.has_data and self.expires_at is not None and now < self.expires_at

    def store(self, data: Any, now: Optional[datetime] = None, ttl_seconds: Optional[float] = None) -> None:
        now = now or datetime.utcnow()
        self.data = data
        self.updated_at = now
        self.expires_at = now + timedelta(seconds=ttl_seconds if ttl_seconds is not None else self.ttl_seconds)

    def extend(self, seconds: float, now: Optional[datetime] = None) -> None:
        now = now or datetime.utcnow()
        self.expires_at = now + timedelta(seconds=seconds)

    def age_seconds(self, now: Optional[datetime] = None) -> Optional[int]:
        if self.updated_at is None:
            return None
        now = now or datetime.utcnow()
        return int((now - self.updated_at).total_seconds())
