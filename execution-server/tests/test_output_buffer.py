from __future__ import annotations

import asyncio

import pytest

from orchestrator.domain.common import ValidationError
from orchestrator.domain.executions import ExecutionNotFoundError, ExecutionStatus, ExecutionStore
from orchestrator.domain.outputs import BufferSealedError, OutputBuffer


async def _running_execution(container):
    execution = await container.dispatch_coordinator().trigger("s1", "c1")
    events = container.execution_events()
    await events.acknowledged(execution.id)
    await events.started(execution.id)
    return execution


def _buffer(container, session):
    return OutputBuffer.with_session(session, container.settings.output)


def test_concurrent_appends_are_gap_free(harness):
    async def scenario(container):
        execution = await _running_execution(container)
        events = container.execution_events()
        await asyncio.gather(*(events.output(execution.id, f"chunk {i}\n") for i in range(25)))
        async with container.session_factory() as session:
            return await _buffer(container, session).read(execution.id, 0, 100)

    page = harness.run(scenario)

    assert [chunk.sequence for chunk in page.chunks] == list(range(25))
    assert sorted(chunk.payload for chunk in page.chunks) == sorted(f"chunk {i}\n" for i in range(25))
    assert page.complete is False
    assert page.next_sequence == 25


def test_read_pages_with_cursor(harness):
    async def scenario(container):
        execution = await _running_execution(container)
        events = container.execution_events()
        for i in range(5):
            await events.output(execution.id, f"{i}")
        await events.finished(execution.id, 0)
        async with container.session_factory() as session:
            buffer = _buffer(container, session)
            first = await buffer.read(execution.id, 0, 2)
            second = await buffer.read(execution.id, first.next_sequence, 2)
            last = await buffer.read(execution.id, second.next_sequence, 2)
            beyond = await buffer.read(execution.id, 10, 2)
        return first, second, last, beyond

    first, second, last, beyond = harness.run(scenario)

    assert [c.payload for c in first.chunks] == ["0", "1"]
    assert first.complete is False
    assert [c.payload for c in second.chunks] == ["2", "3"]
    assert second.complete is False
    assert [c.payload for c in last.chunks] == ["4"]
    assert last.complete is True
    assert last.exit_code == 0
    assert beyond.chunks == []
    assert beyond.complete is True
    assert beyond.next_sequence == 10


def test_empty_output_of_finished_execution_is_complete(harness):
    async def scenario(container):
        execution = await container.dispatch_coordinator().trigger("s1", "c1")
        await container.dispatch_coordinator().cancel(execution.id)
        async with container.session_factory() as session:
            return await _buffer(container, session).read(execution.id)

    page = harness.run(scenario)

    assert page.chunks == []
    assert page.complete is True
    assert page.exit_code is None


def test_append_to_terminal_execution_is_sealed(harness):
    async def scenario(container):
        execution = await _running_execution(container)
        await container.execution_events().finished(execution.id, 1)
        async with container.session_factory() as session:
            with pytest.raises(BufferSealedError):
                await _buffer(container, session).append(execution.id, "late")

    harness.run(scenario)


def test_append_decodes_bytes_and_records_activity(harness):
    async def scenario(container):
        execution = await _running_execution(container)
        async with container.session_factory() as session:
            chunk = await _buffer(container, session).append(execution.id, "naïve\n".encode("utf-8"), True)
            await session.commit()
            refreshed = await ExecutionStore.with_session(session).get(execution.id)
        return execution, chunk, refreshed

    execution, chunk, refreshed = harness.run(scenario)

    assert chunk.payload == "naïve\n"
    assert chunk.is_final is True
    assert refreshed.status is ExecutionStatus.RUNNING
    assert refreshed.last_activity_at >= chunk.created_at


def test_read_validates_input(harness):
    async def scenario(container):
        execution = await _running_execution(container)
        async with container.session_factory() as session:
            buffer = _buffer(container, session)
            with pytest.raises(ValidationError):
                await buffer.read(execution.id, -1)
            with pytest.raises(ValidationError):
                await buffer.read(execution.id, 0, 0)
            with pytest.raises(ValidationError):
                await buffer.append(execution.id, "x", stream="stdin")
            with pytest.raises(ExecutionNotFoundError):
                await buffer.read("missing")

    harness.run(scenario)


def test_iter_chunks_walks_every_page(harness):
    async def scenario(container):
        execution = await _running_execution(container)
        events = container.execution_events()
        for i in range(7):
            await events.output(execution.id, str(i))
        async with container.session_factory() as session:
            buffer = _buffer(container, session)
            return [chunk.payload async for chunk in buffer.iter_chunks(execution.id, 2, batch_size=2)]

    assert harness.run(scenario) == ["2", "3", "4", "5", "6"]
