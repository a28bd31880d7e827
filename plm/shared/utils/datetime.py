"""
UTC datetime helpers.

Every datetime persisted by the engine is timezone-aware UTC. Planned
dates are plain ``date`` values and never pass through these helpers.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)
