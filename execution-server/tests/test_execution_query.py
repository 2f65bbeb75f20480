from __future__ import annotations

import pytest

from orchestrator.core.config import QuerySettings
from orchestrator.domain.common import ValidationError
from orchestrator.domain.executions import (
    ExecutionFilters,
    ExecutionQueryService,
    ExecutionStatus,
    TriggerType,
    parse_status,
    parse_trigger_type,
)
from orchestrator.infrastructure.database.repositories.execution_repository import SqlExecutionRepository


async def _seed(container):
    """Three succeeded runs of s1 on c1, one failed s1 on c2, one pending s2 on c1."""
    coordinator = container.dispatch_coordinator()
    events = container.execution_events()
    for _ in range(3):
        execution = await coordinator.trigger("s1", "c1")
        await events.acknowledged(execution.id)
        await events.started(execution.id)
        await events.finished(execution.id, 0)
    failed = await coordinator.trigger("s1", "c2")
    await events.acknowledged(failed.id, accepted=False, rejection_reason="not approved")
    await coordinator.trigger("s2", "c1")


def test_filters_and_totals(harness):
    async def scenario(container):
        await _seed(container)
        async with container.session_factory() as session:
            service = ExecutionQueryService.with_session(session, container.settings.query)
            return (
                await service.list(ExecutionFilters()),
                await service.list(ExecutionFilters(script_id="s1")),
                await service.list(ExecutionFilters(script_id="s1", status=ExecutionStatus.SUCCEEDED)),
                await service.list(ExecutionFilters(client_id="c1", status=ExecutionStatus.PENDING)),
                await service.list(ExecutionFilters(status=ExecutionStatus.RUNNING)),
            )

    everything, s1, s1_succeeded, c1_pending, running = harness.run(scenario)

    assert everything.total == 5
    assert s1.total == 4
    assert s1_succeeded.total == 3
    assert all(item.status is ExecutionStatus.SUCCEEDED for item in s1_succeeded.items)
    assert c1_pending.total == 1
    assert c1_pending.items[0].script_id == "s2"
    assert running.total == 0
    assert running.items == []


def test_newest_first_and_paging(harness):
    async def scenario(container):
        await _seed(container)
        async with container.session_factory() as session:
            service = ExecutionQueryService.with_session(session, container.settings.query)
            first = await service.list(ExecutionFilters(), page=1, page_size=2)
            third = await service.list(ExecutionFilters(), page=3, page_size=2)
            beyond = await service.list(ExecutionFilters(), page=4, page_size=2)
            everything = await service.list(ExecutionFilters())
        return first, third, beyond, everything

    first, third, beyond, everything = harness.run(scenario)

    created = [item.created_at for item in everything.items]
    assert created == sorted(created, reverse=True)
    assert [item.id for item in first.items] == [item.id for item in everything.items[:2]]
    assert len(third.items) == 1
    assert beyond.items == []
    assert beyond.total == 5


def test_page_size_defaults_and_clamps(harness):
    async def scenario(container):
        await _seed(container)
        async with container.session_factory() as session:
            service = ExecutionQueryService(
                SqlExecutionRepository(session),
                QuerySettings(default_page_size=2, max_page_size=3),
            )
            return (
                await service.list(ExecutionFilters()),
                await service.list(ExecutionFilters(), page_size=50),
            )

    default, clamped = harness.run(scenario)

    assert len(default.items) == 2
    assert len(clamped.items) == 3
    assert clamped.total == 5


def test_invalid_paging_is_rejected(harness):
    async def scenario(container):
        async with container.session_factory() as session:
            service = ExecutionQueryService.with_session(session, container.settings.query)
            with pytest.raises(ValidationError):
                await service.list(ExecutionFilters(), page=0)
            with pytest.raises(ValidationError):
                await service.list(ExecutionFilters(), page_size=0)

    harness.run(scenario)


def test_parse_status():
    assert parse_status(None) is None
    assert parse_status("") is None
    assert parse_status("TimedOut") is ExecutionStatus.TIMED_OUT
    with pytest.raises(ValidationError):
        parse_status("Exploded")


def test_statistics_count_every_status(harness):
    async def scenario(container):
        await _seed(container)
        await container.execution_events().submitted("s3", "c2", 0)
        async with container.session_factory() as session:
            service = ExecutionQueryService.with_session(session, container.settings.query)
            return (
                await service.statistics(),
                await service.statistics(client_id="c2"),
                await service.statistics(script_id="missing"),
                await service.list(ExecutionFilters(trigger_type=TriggerType.CLIENT_PULL)),
            )

    everything, c2, nothing, pulled = harness.run(scenario)

    assert everything.total == 6
    assert everything.by_status[ExecutionStatus.SUCCEEDED] == 4
    assert everything.by_status[ExecutionStatus.FAILED] == 1
    assert everything.by_status[ExecutionStatus.PENDING] == 1
    assert everything.by_status[ExecutionStatus.TIMED_OUT] == 0
    assert set(everything.by_status) == set(ExecutionStatus)
    assert everything.by_trigger_type == {TriggerType.UI_PUSH: 5, TriggerType.CLIENT_PULL: 1}
    assert c2.total == 2
    assert c2.by_trigger_type == {TriggerType.UI_PUSH: 1, TriggerType.CLIENT_PULL: 1}
    assert nothing.total == 0
    assert all(count == 0 for count in nothing.by_status.values())
    assert pulled.total == 1
    assert pulled.items[0].script_id == "s3"


def test_parse_trigger_type():
    assert parse_trigger_type(None) is None
    assert parse_trigger_type("ClientPull") is TriggerType.CLIENT_PULL
    with pytest.raises(ValidationError):
        parse_trigger_type("Cron")
