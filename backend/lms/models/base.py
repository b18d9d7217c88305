"""Column helpers shared by the domain models."""
import uuid
from datetime import datetime, UTC


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)
