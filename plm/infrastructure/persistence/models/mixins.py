"""SQLAlchemy mixins for common model patterns.

Provides: CuidMixin, TimestampMixin, VersionedMixin and the combined
TimestampedModel / VersionedModel, plus enum_check for status columns.
"""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from plm.shared.utils.generators import generate_cuid


class CuidMixin:
    """Mixin for models using CUID as primary key. Provides id with default generate_cuid."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class TimestampMixin:
    """Mixin for created_at and updated_at (server defaults, timezone-aware)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class VersionedMixin:
    """Mixin for optimistic locking: version integer, default 1.

    Writers bump version in the same UPDATE that checks it; the ORM
    version_id_col feature is not used because status writes are bulk
    UPDATE statements.
    """

    @declared_attr
    def version(cls) -> Mapped[int]:
        return mapped_column(Integer, default=1, server_default="1", nullable=False)


class TimestampedModel(CuidMixin, TimestampMixin):
    """Combined mixin: CUID + created_at/updated_at."""

    __abstract__ = True


class VersionedModel(CuidMixin, TimestampMixin, VersionedMixin):
    """Combined mixin: CUID + timestamps + version."""

    __abstract__ = True


def enum_check(column: str, values: Iterable[str], name: str) -> CheckConstraint:
    """CHECK (column IN (...)) over enum values."""
    return CheckConstraint(
        "{} IN ({})".format(
            column,
            ", ".join("'{}'".format(v.replace("'", "''")) for v in values),
        ),
        name=name,
    )
