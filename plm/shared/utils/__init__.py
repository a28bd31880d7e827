"""Shared utilities."""

from plm.shared.utils.datetime import utc_now
from plm.shared.utils.generators import generate_cuid

__all__ = ["generate_cuid", "utc_now"]
