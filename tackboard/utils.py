import uuid
from datetime import date, datetime, time, timedelta
from typing import Optional


def new_request_id() -> str:
    return str(uuid.uuid4())


def parse_id(value: Optional[str]) -> Optional[int]:
    """Parse a positive integer identifier from a path or query value.

    Returns ``None`` for anything that is not a plain base-10 integer so the
    caller can answer with a 400 instead of letting the store fail.
    """
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    return int(value)


def parse_id_list(value: Optional[str]) -> list[int]:
    """Parse a comma separated id list such as ``"3,7,9"``; blanks are skipped."""
    if not value:
        return []
    out = []
    for part in value.split(","):
        if not part.strip():
            continue
        parsed = parse_id(part)
        if parsed is None:
            raise ValueError(f"invalid id {part!r}")
        out.append(parsed)
    return out


def day_window(day: date) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` datetime range covering one calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def status_timestamps(status: str, now: datetime) -> dict[str, Optional[datetime]]:
    """Timestamp columns implied by moving an entity into ``status``."""
    if status == "archived":
        return {"archived_at": now, "deleted_at": None}
    if status == "deleted":
        return {"archived_at": None, "deleted_at": now}
    return {"archived_at": None, "deleted_at": None}
