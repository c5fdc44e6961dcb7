from typing import List

from loguru import logger

from dr_rest_client.api_client import DrApiClient
from dr_rest_client.exceptions import ApiError, ExamplesExecutionError
from dr_rest_client.models import (
    ConfigureReplicationSpec,
    Datastore,
    StoragePolicy,
    Task,
    VirtualMachine,
    VmCapabilities,
)


class ReplicationLibrary:
    """vSphere Replication calls scoped to a pairing and one of its vCenters"""

    def __init__(self, api_client: DrApiClient):
        self.api_client = api_client
        self.logger = logger

    async def get_local_vms(
        self, pairing_id: str, vcenter_id: str, suitable_for_replication: bool = True
    ) -> List[VirtualMachine]:
        try:
            data = await self.api_client.request(
                "GET",
                f"/pairings/{pairing_id}/vcenters/{vcenter_id}/vms",
                params={"suitable_for_replication": suitable_for_replication},
            )
        except ApiError as e:
            raise ExamplesExecutionError("ReplicationApi.get_local_vms", e) from e

        self.logger.info(f"Get a list of all VMs on VC {vcenter_id} completed.")
        return [VirtualMachine.model_validate(item) for item in data["list"]]

    async def get_vm_capability(
        self, pairing_id: str, vcenter_id: str, vm_id: str
    ) -> VmCapabilities:
        try:
            data = await self.api_client.request(
                "GET", f"/pairings/{pairing_id}/vcenters/{vcenter_id}/vms/{vm_id}/capability"
            )
        except ApiError as e:
            raise ExamplesExecutionError("ReplicationApi.get_vm_capability", e) from e

        self.logger.info(
            f"Get vSphere Replication capability information about a given VM with Id [{vm_id}] completed."
        )
        return VmCapabilities.model_validate(data)

    async def get_vc_storage_policies(
        self, pairing_id: str, vcenter_id: str
    ) -> List[StoragePolicy]:
        try:
            data = await self.api_client.request(
                "GET", f"/pairings/{pairing_id}/vcenters/{vcenter_id}/storage-policies"
            )
        except ApiError as e:
            raise ExamplesExecutionError("ReplicationApi.get_vc_storage_policies", e) from e

        self.logger.info("Get VC storage policies completed.")
        return [StoragePolicy.model_validate(item) for item in data["list"]]

    async def get_vr_capable_target_datastores(
        self, pairing_id: str, vcenter_id: str
    ) -> List[Datastore]:
        try:
            data = await self.api_client.request(
                "GET",
                f"/pairings/{pairing_id}/vcenters/{vcenter_id}/vr-capable-target-datastores",
            )
        except ApiError as e:
            raise ExamplesExecutionError(
                "ReplicationApi.get_vr_capable_target_datastores", e
            ) from e

        self.logger.info("Get VR supported datastores completed.")
        return [Datastore.model_validate(item) for item in data["list"]]

    async def configure_replication(
        self, pairing_id: str, specs: List[ConfigureReplicationSpec]
    ) -> List[Task]:
        """Submit one replication spec per VM; the gateway answers with one task per VM"""
        body = [spec.model_dump(mode="json", exclude_none=True) for spec in specs]
        try:
            data = await self.api_client.request(
                "POST", f"/pairings/{pairing_id}/replications", json=body
            )
        except ApiError as e:
            raise ExamplesExecutionError("ReplicationApi.configure_replication", e) from e

        self.logger.info("Configure replication completed.")
        return [Task.model_validate(item) for item in data["list"]]
