from datetime import datetime, date, timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo

from clinicflow.core.config import settings


def get_zoneinfo() -> Optional[ZoneInfo]:
    tz_name = getattr(settings, "DEFAULT_TIMEZONE", None)
    if not tz_name:
        return None
    try:
        return ZoneInfo(tz_name)
    except Exception:
        return None


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for created_at/updated_at."""
    return datetime.now(dt_timezone.utc).replace(tzinfo=None)


def now_local() -> datetime:
    tz = get_zoneinfo()
    return datetime.now(tz) if tz else datetime.now(dt_timezone.utc)


def today_local() -> date:
    return now_local().date()
