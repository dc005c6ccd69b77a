from datetime import datetime, timezone


def utc_now_naive() -> datetime:
    """Audit timestamps (created/updated/cancelled_at) are stored as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
