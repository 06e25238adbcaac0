from datetime import datetime, date, timezone
from zoneinfo import ZoneInfo

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def now_local(tz_name: str = "UTC") -> datetime:
    return datetime.now(tz=ZoneInfo(tz_name))

def today_local(tz_name: str = "UTC") -> date:
    return now_local(tz_name).date()

def iso_utc(dt: datetime) -> str:
    # 2024-05-01T10:00:00.123Z, same shape as Date.toISOString()
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)
