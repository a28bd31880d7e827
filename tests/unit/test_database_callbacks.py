"""After-commit / after-rollback callbacks of the transactional session dependency."""

import pytest

from plm.infrastructure.persistence import database
from plm.infrastructure.persistence.database import (
    SqlAlchemyUnitOfWork,
    get_db_transactional,
    register_after_commit,
    register_after_rollback,
)


class FakeTransaction:
    def __init__(self, session: "FakeSession", nested: bool = False) -> None:
        self.session = session
        self.nested = nested

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        outcome = "rollback" if exc_type else "commit"
        self.session.events.append(f"{'savepoint ' if self.nested else ''}{outcome}")
        return False


class FakeSession:
    def __init__(self) -> None:
        self.info: dict = {}
        self.events: list[str] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.events.append("close")
        return False

    def begin(self) -> FakeTransaction:
        return FakeTransaction(self)

    def begin_nested(self) -> FakeTransaction:
        return FakeTransaction(self, nested=True)


@pytest.fixture
def session(monkeypatch) -> FakeSession:
    fake = FakeSession()
    monkeypatch.setattr(database, "get_session_factory", lambda: lambda: fake)
    return fake


async def test_commit_runs_after_commit_callbacks_only(session):
    calls: list[str] = []
    dependency = get_db_transactional()
    db = await anext(dependency)
    register_after_commit(db, lambda: calls.append("flush"))
    register_after_rollback(db, lambda: calls.append("discard"))

    with pytest.raises(StopAsyncIteration):
        await anext(dependency)

    assert calls == ["flush"]
    assert session.events == ["commit", "close"]
    assert session.info == {}


async def test_rollback_runs_after_rollback_callbacks_only(session):
    calls: list[str] = []
    dependency = get_db_transactional()
    db = await anext(dependency)
    register_after_commit(db, lambda: calls.append("flush"))
    register_after_rollback(db, lambda: calls.append("discard"))

    with pytest.raises(RuntimeError):
        await dependency.athrow(RuntimeError("handler failed"))

    assert calls == ["discard"]
    assert session.events == ["rollback", "close"]


async def test_failing_callback_does_not_stop_the_rest(session):
    calls: list[str] = []

    def broken() -> None:
        raise ValueError("callback bug")

    dependency = get_db_transactional()
    db = await anext(dependency)
    register_after_commit(db, broken)
    register_after_commit(db, lambda: calls.append("second"))

    with pytest.raises(StopAsyncIteration):
        await anext(dependency)

    assert calls == ["second"]


async def test_unit_of_work_savepoint_rolls_back_on_error():
    session = FakeSession()
    uow = SqlAlchemyUnitOfWork(session)

    async with uow.savepoint():
        pass
    with pytest.raises(KeyError):
        async with uow.savepoint():
            raise KeyError("row")

    assert session.events == ["savepoint commit", "savepoint rollback"]
