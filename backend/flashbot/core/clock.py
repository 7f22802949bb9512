from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC: так время хранится в БД и сравнивается в планировщике."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
