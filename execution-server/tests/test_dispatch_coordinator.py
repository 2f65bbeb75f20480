from __future__ import annotations

import asyncio

import pytest

from orchestrator.domain.executions import (
    ErrorKind,
    ExecutionStatus,
    ExecutionStore,
    InvalidTransitionError,
)


def test_trigger_creates_and_dispatches(harness, transport):
    async def scenario(container):
        return await container.dispatch_coordinator().trigger("s1", "c1")

    execution = harness.run(scenario)

    assert execution.status is ExecutionStatus.PENDING
    assert [(c.execution_id, c.script_id, c.client_id) for c in transport.executions] == [
        (execution.id, "s1", "c1")
    ]


def test_double_trigger_returns_same_execution(harness, transport):
    async def scenario(container):
        coordinator = container.dispatch_coordinator()
        first = await coordinator.trigger("s1", "c1")
        second = await coordinator.trigger("s1", "c1")
        return first, second

    first, second = harness.run(scenario)

    assert first.id == second.id
    assert len(transport.executions) == 1


def test_concurrent_triggers_coalesce(harness, transport):
    async def scenario(container):
        coordinator = container.dispatch_coordinator()
        return await asyncio.gather(*(coordinator.trigger("s1", "c1") for _ in range(8)))

    results = harness.run(scenario)

    assert len({execution.id for execution in results}) == 1
    assert len(transport.executions) == 1


def test_concurrent_triggers_for_different_pairs_are_independent(harness, transport):
    async def scenario(container):
        coordinator = container.dispatch_coordinator()
        return await asyncio.gather(
            coordinator.trigger("s1", "c1"),
            coordinator.trigger("s1", "c2"),
            coordinator.trigger("s2", "c1"),
        )

    results = harness.run(scenario)

    assert len({execution.id for execution in results}) == 3
    assert len(transport.executions) == 3


def test_trigger_after_terminal_creates_fresh_execution(harness, transport):
    async def scenario(container):
        coordinator = container.dispatch_coordinator()
        events = container.execution_events()
        first = await coordinator.trigger("s1", "c1")
        await events.acknowledged(first.id)
        await events.started(first.id)
        await events.finished(first.id, 0)
        second = await coordinator.trigger("s1", "c1")
        async with container.session_factory() as session:
            first = await ExecutionStore.with_session(session).get(first.id)
        return first, second

    first, second = harness.run(scenario)

    assert first.status is ExecutionStatus.SUCCEEDED
    assert second.id != first.id
    assert second.status is ExecutionStatus.PENDING
    assert len(transport.executions) == 2


def test_unreachable_client_fails_execution_without_raising(harness, transport):
    transport.unreachable.add("offline")

    async def scenario(container):
        coordinator = container.dispatch_coordinator()
        failed = await coordinator.trigger("s1", "offline")
        retry = await coordinator.trigger("s1", "offline")
        return failed, retry

    failed, retry = harness.run(scenario)

    assert failed.status is ExecutionStatus.FAILED
    assert failed.error_kind is ErrorKind.CLIENT_UNREACHABLE
    assert failed.finished_at is not None
    # the failed attempt does not block a new one
    assert retry.id != failed.id


def test_cancel_transitions_and_requests_abort(harness, transport):
    async def scenario(container):
        coordinator = container.dispatch_coordinator()
        execution = await coordinator.trigger("s1", "c1")
        cancelled = await coordinator.cancel(execution.id)
        with pytest.raises(InvalidTransitionError):
            await coordinator.cancel(execution.id)
        # late callbacks from the client are discarded
        late = await container.execution_events().finished(execution.id, 0)
        return cancelled, late

    cancelled, late = harness.run(scenario)

    assert cancelled.status is ExecutionStatus.CANCELLED
    assert cancelled.error_kind is ErrorKind.CANCELLED
    assert [command.execution_id for command in transport.aborts] == [cancelled.id]
    assert late is None
