from typing import Optional

from loguru import logger
from pydantic import BaseModel

from dr_rest_client.api_client import DrApiClient
from dr_rest_client.exceptions import ApiError, ExamplesExecutionError
from dr_rest_client.models import (
    CleanupTestPlanSpec,
    ProtectionGroupCreateSpec,
    RecoverPlanSpec,
    RecoveryPlanCreateSpec,
    ReprotectPlanSpec,
    Task,
    TestPlanSpec,
)


class ProtectionLibrary:
    """Site Recovery Manager protection groups and recovery plans.

    Every call starts a server-side task and returns it without waiting;
    pair it with TasksLibrary.wait_for_task_completion.
    """

    def __init__(self, api_client: DrApiClient):
        self.api_client = api_client
        self.logger = logger

    async def _submit(
        self, operation: str, path: str, spec: Optional[BaseModel] = None
    ) -> Task:
        body = spec.model_dump(mode="json", exclude_none=True) if spec is not None else None
        try:
            data = await self.api_client.request("POST", path, json=body)
        except ApiError as e:
            raise ExamplesExecutionError(operation, e) from e

        task = Task.model_validate(data)
        self.logger.info(f"Request '{operation}' submitted as task [{task.id}].")
        return task

    async def create_group(self, pairing_id: str, spec: ProtectionGroupCreateSpec) -> Task:
        return await self._submit(
            "ProtectionApi.create_group",
            f"/pairings/{pairing_id}/protection-management/groups",
            spec,
        )

    async def create_plan(self, pairing_id: str, spec: RecoveryPlanCreateSpec) -> Task:
        return await self._submit(
            "RecoveryApi.create_plan",
            f"/pairings/{pairing_id}/recovery-management/plans",
            spec,
        )

    def _plan_action_path(self, pairing_id: str, plan_id: str, action: str) -> str:
        return f"/pairings/{pairing_id}/recovery-management/plans/{plan_id}/actions/{action}"

    async def run_test_recovery(self, pairing_id: str, plan_id: str, spec: TestPlanSpec) -> Task:
        return await self._submit(
            "RecoveryApi.run_test_recovery",
            self._plan_action_path(pairing_id, plan_id, "test-recovery"),
            spec,
        )

    async def run_cleanup_test_recovery(
        self, pairing_id: str, plan_id: str, spec: CleanupTestPlanSpec
    ) -> Task:
        return await self._submit(
            "RecoveryApi.run_cleanup_test_recovery",
            self._plan_action_path(pairing_id, plan_id, "cleanup-test"),
            spec,
        )

    async def cancel_recovery_plan(self, pairing_id: str, plan_id: str) -> Task:
        return await self._submit(
            "RecoveryApi.cancel_recovery_plan",
            self._plan_action_path(pairing_id, plan_id, "cancel"),
        )

    async def run_recovery(self, pairing_id: str, plan_id: str, spec: RecoverPlanSpec) -> Task:
        return await self._submit(
            "RecoveryApi.run_recovery",
            self._plan_action_path(pairing_id, plan_id, "recover"),
            spec,
        )

    async def run_reprotect(self, pairing_id: str, plan_id: str, spec: ReprotectPlanSpec) -> Task:
        return await self._submit(
            "RecoveryApi.run_reprotect",
            self._plan_action_path(pairing_id, plan_id, "reprotect"),
            spec,
        )
