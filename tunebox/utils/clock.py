from datetime import datetime, timedelta, timezone

# Operating region of the service; calendar days for the free tier roll over
# at midnight in this offset regardless of server or user locale.
REFERENCE_UTC_OFFSET = timedelta(hours=3)


def utcnow():
    """Current instant as a naive UTC datetime, the format every model stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def reference_date(instant):
    """Calendar date of ``instant`` in the fixed UTC+3 reference timezone.

    The instant is first normalized to UTC using its own offset (naive values
    are already UTC), then shifted by the reference offset and truncated.
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return (instant + REFERENCE_UTC_OFFSET).date()
