import asyncio
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from dr_rest_client.api_client import DrApiClient
from dr_rest_client.exceptions import ApiError, ConfigNotValidError, ExamplesExecutionError
from dr_rest_client.models import Task, TaskPollingConfig, TaskStatus

TASK_NOT_COMPLETED_STATUSES = frozenset({TaskStatus.QUEUED, TaskStatus.RUNNING})

FetchStatus = Callable[[str], Awaitable[Task]]


async def wait_for_completion(
    fetch_status: FetchStatus,
    task_id: str,
    retry_interval_ms: int,
    timeout: Optional[float] = None,
    on_status_change: Optional[Callable[[Task], Awaitable[Any]]] = None,
) -> Task:
    """Poll a task until it leaves the QUEUED/RUNNING states and return that snapshot.

    Errors raised by fetch_status propagate on the first failure; only a task
    that is still running is polled again. The whole wait is bounded by
    timeout (seconds) when given, raising TimeoutError once it expires.
    Cancelling the awaiting task interrupts the sleep and is not suppressed.
    """
    if retry_interval_ms <= 0:
        raise ConfigNotValidError(
            f"Task completion retry interval must be a positive number of milliseconds, got {retry_interval_ms}"
        )

    last_status = None
    async with asyncio.timeout(timeout):
        task = await fetch_status(task_id)
        while True:
            if task.status != last_status:
                logger.debug(f"Task {task_id} status changed to {task.status.value}")
                if on_status_change is not None:
                    await on_status_change(task)
            last_status = task.status

            if task.status not in TASK_NOT_COMPLETED_STATUSES:
                return task

            logger.debug(
                f"Task {task_id} is {task.status.value}, checking again in {retry_interval_ms}ms"
            )
            await asyncio.sleep(retry_interval_ms / 1000)
            task = await fetch_status(task_id)


class TasksLibrary:
    def __init__(self, api_client: DrApiClient, polling_config: Optional[TaskPollingConfig] = None):
        self.api_client = api_client
        self.polling_config = polling_config or TaskPollingConfig()
        self.logger = logger

    async def get_task_info(self, task_id: str) -> Task:
        try:
            data = await self.api_client.request("GET", f"/tasks/{task_id}")
        except ApiError as e:
            raise ExamplesExecutionError("TasksApi.get_task_info", e) from e

        self.logger.info(f"Info for task {task_id} successfully obtained.")
        return Task.model_validate(data)

    async def wait_for_task_completion(
        self,
        task_id: str,
        on_status_change: Optional[Callable[[Task], Awaitable[Any]]] = None,
    ) -> Task:
        task = await wait_for_completion(
            self.get_task_info,
            task_id,
            self.polling_config.retry_interval_ms,
            timeout=self.polling_config.timeout,
            on_status_change=on_status_change,
        )
        self.logger.info(
            f"Task ID is [{task.id}], status is [{task.status.value}],"
            f" description is [{task.description}], entity is [{task.entity}],"
            f" entity name is [{task.entity_name}]."
        )
        return task
