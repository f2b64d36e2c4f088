"""One-off tick runner — exit status mirrors per-unit failures."""

import mirrio.tick as tick_module
from mirrio.infrastructure.repositories import SqlRoundRepository


class _Engine:
    def __init__(self):
        self.disposed = False

    async def dispose(self):
        self.disposed = True


async def test_run_once_opens_rounds_and_disposes_engine(seed, test_session_factory, monkeypatch):
    await seed()
    engine = _Engine()
    monkeypatch.setattr(
        tick_module, "create_session_factory", lambda url: (engine, test_session_factory),
    )

    assert await tick_module.run_once() == 0
    assert engine.disposed


async def test_run_once_reports_failure(seed, test_session_factory, monkeypatch):
    await seed(n_statements=0)
    engine = _Engine()
    monkeypatch.setattr(
        tick_module, "create_session_factory", lambda url: (engine, test_session_factory),
    )

    assert await tick_module.run_once() == 1
    assert engine.disposed


async def test_run_once_succeeds_when_overlapping_tick_won(
    seed, test_session_factory, dispatcher, settings, monkeypatch,
):
    s = await seed()
    await tick_module.run_tick(test_session_factory, dispatcher, settings)

    async def _stale_idle_groups(self):
        return [(s.group_id, None)]

    monkeypatch.setattr(SqlRoundRepository, "idle_groups", _stale_idle_groups)
    engine = _Engine()
    monkeypatch.setattr(
        tick_module, "create_session_factory", lambda url: (engine, test_session_factory),
    )

    assert await tick_module.run_once() == 0
