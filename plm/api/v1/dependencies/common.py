"""Operator identity and request-scoped side-effect buffer."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from plm.application.dtos.task import Actor
from plm.application.services.side_effects import TaskSideEffects
from plm.core.config import get_settings
from plm.domain.exceptions import ValidationException
from plm.infrastructure.persistence.database import (
    get_db_transactional,
    register_after_commit,
    register_after_rollback,
)


async def get_operator(request: Request) -> Actor:
    """Actor from the operator header (X-Operator-ID by default).

    Raises:
        ValidationException: Header missing or blank.
    """
    header = get_settings().operator_header_name
    operator_id = (request.headers.get(header) or "").strip()
    if not operator_id:
        raise ValidationException(f"{header} header is required", field=header)
    return Actor(id=operator_id)


async def get_side_effects(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> TaskSideEffects:
    """Side-effect buffer bound to the request transaction.

    Flushed to the outbox after commit; discarded on rollback.
    """
    state = request.app.state
    side_effects = TaskSideEffects(
        state.outbox,
        tracker=getattr(state, "task_tracker", None),
        external_id_store=getattr(state, "external_id_store", None),
        notifier=getattr(state, "notifier", None),
        procurement_hook=getattr(state, "procurement_hook", None),
        publisher=getattr(state, "task_publisher", None),
    )
    register_after_commit(db, side_effects.flush)
    register_after_rollback(db, side_effects.discard)
    return side_effects
