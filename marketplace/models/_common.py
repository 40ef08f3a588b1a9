from datetime import datetime, timezone
from uuid import uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    # document-style ids, opaque to callers
    return uuid4().hex[:20]
