"""Action log history query: newest first by write order."""

from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.dialects import postgresql

from plm.infrastructure.persistence.repositories.task_repo import TaskActionLogRepository


async def test_history_is_ordered_by_write_sequence():
    result = MagicMock()
    result.scalars.return_value.all.return_value = []
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)

    assert await TaskActionLogRepository(db).list_for_task("t1") == []

    statement = db.execute.await_args.args[0]
    sql = str(statement.compile(dialect=postgresql.dialect()))
    assert sql.rstrip().endswith("ORDER BY task_action_log.seq DESC")
    assert "created_at DESC" not in sql
