import asyncio
from typing import List

import pytest
from loguru import logger
from dr_rest_client.api_client import DrApiClient
from dr_rest_client.authentication import AuthenticationLibrary
from dr_rest_client.exceptions import ConfigNotValidError, ExamplesExecutionError
from dr_rest_client.models import Task, TaskPollingConfig, TaskStatus
from dr_rest_client.tasks import TasksLibrary, wait_for_completion


class ScriptedTask:
    """Serves task snapshots from a fixed list of statuses and counts the fetches."""

    def __init__(self, statuses: List[str]):
        self.statuses = list(statuses)
        self.fetches = 0
        self.fetch_times: List[float] = []

    async def fetch(self, task_id: str) -> Task:
        self.fetch_times.append(asyncio.get_running_loop().time())
        status = self.statuses[min(self.fetches, len(self.statuses) - 1)]
        self.fetches += 1
        return Task(id=task_id, status=TaskStatus(status), result=f"fetch-{self.fetches}")


@pytest.mark.asyncio
async def test_polls_until_terminal_status():
    scripted = ScriptedTask(["QUEUED", "RUNNING", "RUNNING", "SUCCESS"])

    result = await wait_for_completion(scripted.fetch, "task-1", 10)

    assert result.status == TaskStatus.SUCCESS
    assert result.result == "fetch-4"
    assert scripted.fetches == 4


@pytest.mark.asyncio
async def test_terminal_first_fetch_does_not_sleep(monkeypatch):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    scripted = ScriptedTask(["ERROR"])

    result = await wait_for_completion(scripted.fetch, "task-1", 10)

    assert result.status == TaskStatus.ERROR
    assert scripted.fetches == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_sleeps_retry_interval_between_fetches():
    scripted = ScriptedTask(["QUEUED", "RUNNING", "SUCCESS"])

    await wait_for_completion(scripted.fetch, "task-1", 50)

    gaps = [b - a for a, b in zip(scripted.fetch_times, scripted.fetch_times[1:])]
    assert len(gaps) == 2
    # Small tolerance for the event loop clock resolution
    assert all(gap >= 0.045 for gap in gaps)


@pytest.mark.asyncio
async def test_fetch_error_propagates_without_retry():
    calls = []

    async def failing_fetch(task_id):
        calls.append(task_id)
        if len(calls) == 2:
            raise ConnectionError("gateway unreachable")
        return Task(id=task_id, status=TaskStatus.RUNNING)

    with pytest.raises(ConnectionError):
        await wait_for_completion(failing_fetch, "task-1", 1)
    assert len(calls) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("interval", [0, -100])
async def test_non_positive_interval_fails_before_fetching(interval):
    scripted = ScriptedTask(["SUCCESS"])

    with pytest.raises(ConfigNotValidError):
        await wait_for_completion(scripted.fetch, "task-1", interval)
    assert scripted.fetches == 0


@pytest.mark.asyncio
async def test_timeout_bounds_the_wait():
    scripted = ScriptedTask(["RUNNING"])

    with pytest.raises(TimeoutError):
        await wait_for_completion(scripted.fetch, "task-1", 20, timeout=0.1)
    assert scripted.fetches >= 2


@pytest.mark.asyncio
async def test_cancellation_propagates():
    scripted = ScriptedTask(["RUNNING"])
    poll = asyncio.create_task(wait_for_completion(scripted.fetch, "task-1", 10_000))
    while scripted.fetches == 0:
        await asyncio.sleep(0)

    poll.cancel()

    with pytest.raises(asyncio.CancelledError):
        await poll
    assert scripted.fetches == 1


@pytest.mark.asyncio
async def test_status_change_callback_sees_each_transition_once():
    seen = []

    async def on_change(task):
        seen.append(task.status)

    scripted = ScriptedTask(["QUEUED", "QUEUED", "RUNNING", "RUNNING", "SUCCESS"])
    await wait_for_completion(scripted.fetch, "task-1", 1, on_status_change=on_change)

    assert seen == [TaskStatus.QUEUED, TaskStatus.RUNNING, TaskStatus.SUCCESS]


@pytest.mark.asyncio
async def test_status_changes_are_logged_without_a_callback():
    messages = []
    sink_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    try:
        scripted = ScriptedTask(["QUEUED", "RUNNING", "SUCCESS"])
        await wait_for_completion(scripted.fetch, "task-1", 1)
    finally:
        logger.remove(sink_id)

    changes = [m for m in messages if "status changed to" in m]
    assert changes == [
        "Task task-1 status changed to QUEUED",
        "Task task-1 status changed to RUNNING",
        "Task task-1 status changed to SUCCESS",
    ]


def test_polling_config_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        TaskPollingConfig(retry_interval_ms=0)


@pytest.mark.asyncio
async def test_tasks_library_waits_for_gateway_task(server):
    server_instance, base_url = server
    async with DrApiClient(base_url) as client:
        await AuthenticationLibrary(client).login(
            server_instance.username, server_instance.password
        )
        created = server_instance._new_task("Unit test task", "entity-1", "result-1")
        tasks = TasksLibrary(client, TaskPollingConfig(retry_interval_ms=10, timeout=5))

        result = await tasks.wait_for_task_completion(created["id"])

    assert result.status == TaskStatus.SUCCESS
    assert result.result == "result-1"
    assert server_instance.tasks[created["id"]]["polls"] == server_instance.polls_to_complete


@pytest.mark.asyncio
async def test_tasks_library_wraps_unknown_task(server):
    server_instance, base_url = server
    async with DrApiClient(base_url) as client:
        await AuthenticationLibrary(client).login(
            server_instance.username, server_instance.password
        )
        tasks = TasksLibrary(client, TaskPollingConfig(retry_interval_ms=10))

        with pytest.raises(ExamplesExecutionError) as excinfo:
            await tasks.wait_for_task_completion("HmsTask-missing")

    assert excinfo.value.operation == "TasksApi.get_task_info"
    assert excinfo.value.status == 404
