"""Domain models for kiosk sessions."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StoredSession:
    """An anonymous correlation id and the time it was last refreshed."""

    id: str
    created_at: datetime
