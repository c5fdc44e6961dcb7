from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple

from loguru import logger

from dr_rest_client.api_client import DrApiClient
from dr_rest_client.authentication import AuthenticationLibrary
from dr_rest_client.config import ExamplesConfig, Keys
from dr_rest_client.exceptions import ConfigNotValidError, ExamplesExecutionError
from dr_rest_client.models import (
    CleanupTestPlanSpec,
    ConfigureReplicationSpec,
    ConfigureReplicationVmDisk,
    Datastore,
    HbrProtectionGroupSpec,
    Pairing,
    ProtectionGroupCreateSpec,
    RecoverPlanSpec,
    RecoveryPlanCreateSpec,
    ReplicationServerInfo,
    ReplicationType,
    ReprotectPlanSpec,
    SessionIdData,
    SessionInfo,
    StoragePolicy,
    Task,
    TaskStatus,
    TestNetworkMappingsSpec,
    TestPlanSpec,
    VirtualMachine,
)
from dr_rest_client.pairing import PairingLibrary
from dr_rest_client.protection import ProtectionLibrary
from dr_rest_client.replication import ReplicationLibrary
from dr_rest_client.selection import (
    choose_datastore,
    choose_local_vms,
    choose_pairing,
    choose_remote_vr,
    choose_storage_policy,
    choose_vrms,
    find_pairing_by_remote_vc,
    string_to_moref,
)
from dr_rest_client.tasks import TasksLibrary

RECOVERY_ACTIONS = ("test", "cleanup", "cancel", "recover", "reprotect")


def create_api_client(config: ExamplesConfig) -> DrApiClient:
    return DrApiClient(
        config.get_property_not_empty(Keys.REST_API_BASE_PATH),
        verify_ssl=config.get_boolean_or_default(Keys.VERIFY_SSL, False),
    )


class DrExamples:
    """The example call sequences, run against one API client and one configuration.

    Each run_* coroutine logs in, does its work and always logs out again.
    Configuration values are read before the first request so that a bad
    properties file never leaves a half-done workflow behind.
    """

    def __init__(self, api_client: DrApiClient, config: ExamplesConfig):
        self.api_client = api_client
        self.config = config
        self.authentication = AuthenticationLibrary(api_client)
        self.pairing = PairingLibrary(api_client)
        self.replication = ReplicationLibrary(api_client)
        self.protection = ProtectionLibrary(api_client)
        self.tasks = TasksLibrary(api_client, config.polling_config())
        self.logger = logger

    @asynccontextmanager
    async def logged_in(self) -> AsyncIterator[SessionIdData]:
        session = await self.authentication.login(
            self.config.get_property_not_empty(Keys.SSO_USERNAME),
            self.config.get_password(Keys.SSO_PASSWORD),
        )
        try:
            yield session
        except BaseException:
            # The workflow's own error takes precedence over a failed logout.
            try:
                await self.authentication.logout()
            except ExamplesExecutionError as e:
                self.logger.error(f"Logout after a failed workflow did not succeed: {e}")
            raise
        else:
            await self.authentication.logout()

    def _remote_credentials(self) -> Tuple[str, str]:
        return (
            self.config.get_property_not_empty(Keys.REMOTE_SSO_USERNAME),
            self.config.get_password(Keys.REMOTE_SSO_PASSWORD),
        )

    async def _remote_login(self, pairing: Pairing, credentials: Tuple[str, str]) -> None:
        username, password = credentials
        await self.pairing.remote_login(pairing.pairing_id, username, password)

    async def _connect_to_remote_vc(
        self, remote_vc_name: str, credentials: Tuple[str, str]
    ) -> Pairing:
        pairings = await self.pairing.get_all_pairings()
        self.logger.info(f"Found {len(pairings)} pairings")
        pairing = find_pairing_by_remote_vc(pairings, remote_vc_name)
        await self._remote_login(pairing, credentials)
        return pairing

    async def run_authentication_scenario(self) -> SessionInfo:
        self.logger.info("=== Run Authentication Scenario...")
        async with self.logged_in():
            return await self.authentication.get_current_session()

    async def run_configure_replication_scenario(self) -> List[Task]:
        self.logger.info("=== Run Configure Replication Scenario...")
        vm_names = self.config.get_list(Keys.LOCAL_VMS)
        storage_policy_name = self.config.get_property_not_empty(Keys.REMOTE_STORAGE_POLICY)
        datastore_name = self.config.get_property_not_empty(Keys.REMOTE_DATASTORE)
        remote_credentials = self._remote_credentials()

        async with self.logged_in():
            pairing = choose_pairing(await self.pairing.get_all_pairings())
            pairing_id = pairing.pairing_id
            await self._remote_login(pairing, remote_credentials)

            local_vc_id = pairing.local_vc_server.id
            remote_vc_id = pairing.remote_vc_server.id
            vms = choose_local_vms(
                await self.replication.get_local_vms(pairing_id, local_vc_id, True), vm_names
            )

            vrms = choose_vrms(await self.pairing.get_all_vrms_details(pairing_id))
            target_vrs = choose_remote_vr(
                await self.pairing.get_all_vrs_details(pairing_id, vrms.id)
            )
            storage_policy = choose_storage_policy(
                await self.replication.get_vc_storage_policies(pairing_id, remote_vc_id),
                storage_policy_name,
            )
            datastore = choose_datastore(
                await self.replication.get_vr_capable_target_datastores(pairing_id, remote_vc_id),
                datastore_name,
            )

            specs = []
            for vm in vms:
                specs.append(
                    await self._replication_spec(pairing, vm, datastore, storage_policy, target_vrs)
                )

            tasks = await self.replication.configure_replication(pairing_id, specs)
            return [await self.tasks.wait_for_task_completion(task.id) for task in tasks]

    async def _replication_spec(
        self,
        pairing: Pairing,
        vm: VirtualMachine,
        datastore: Datastore,
        storage_policy: StoragePolicy,
        target_vrs: ReplicationServerInfo,
    ) -> ConfigureReplicationSpec:
        # Capabilities tell what the VM supports; they are not always the right
        # defaults, MPIT and VM data sets stay off here.
        capabilities = await self.replication.get_vm_capability(
            pairing.pairing_id, pairing.local_vc_server.id, vm.id
        )
        disks = [
            ConfigureReplicationVmDisk(
                vm_disk=disk,
                enabled_for_replication=True,
                use_seeds=False,
                destination_datastore_id=datastore.id,
                destination_storage_policy_id=storage_policy.storage_policy_id,
            )
            for disk in vm.disks
        ]
        return ConfigureReplicationSpec(
            vm_id=vm.id,
            target_vc_id=pairing.remote_vc_server.id,
            target_replication_server_id=target_vrs.id,
            rpo=capabilities.min_rpo_mins + 10,
            auto_replicate_new_disks=capabilities.auto_replicate_new_disks_supported,
            lwd_encryption_enabled=capabilities.lwd_encryption_supported,
            mpit_enabled=False,
            mpit_instances=0,
            mpit_days=0,
            network_compression_enabled=capabilities.network_compression_supported,
            quiesce_enabled=capabilities.quiescing_supported,
            vm_data_sets_replication_enabled=False,
            disks=disks,
        )

    def group_spec(self) -> ProtectionGroupCreateSpec:
        replication_type = self.config.get_property_not_empty(Keys.REPLICATION_TYPE)
        try:
            replication_type = ReplicationType(replication_type.upper())
        except ValueError:
            raise ConfigNotValidError(
                f"Configuration value [{replication_type}] with property name"
                f" [{Keys.REPLICATION_TYPE}] is not a replication type."
            ) from None

        return ProtectionGroupCreateSpec(
            name=self.config.get_property_not_empty(Keys.GROUP_NAME),
            description=self.config.get_optional(Keys.GROUP_DESCRIPTION),
            location=self.config.get_optional(Keys.GROUP_LOCATION),
            replication_type=replication_type,
            protected_vc_guid=self.config.get_property_not_empty(Keys.PROTECTED_VC_GUID),
            hbr_spec=HbrProtectionGroupSpec(vms=self.config.get_list(Keys.VM)),
        )

    def plan_spec(self, protection_group: str) -> RecoveryPlanCreateSpec:
        return RecoveryPlanCreateSpec(
            name=self.config.get_property_not_empty(Keys.PLAN_NAME),
            description=self.config.get_optional(Keys.PLAN_DESCRIPTION),
            location=self.config.get_optional(Keys.PLAN_LOCATION),
            protected_vc_guid=self.config.get_property_not_empty(Keys.PROTECTED_VC_GUID),
            protection_groups=[protection_group],
            test_network_mappings=[
                TestNetworkMappingsSpec(
                    test_network=self.config.get_property_not_empty(Keys.PLAN_TEST_NETWORK),
                    target_network=self.config.get_property_not_empty(Keys.PLAN_TARGET_NETWORK),
                )
            ],
        )

    async def run_create_group(self) -> Task:
        self.logger.info("=== Run Create Protection Group Scenario...")
        remote_vc_name = self.config.get_property_not_empty(Keys.REMOTE_VC_NAME)
        group_spec = self.group_spec()
        remote_credentials = self._remote_credentials()

        async with self.logged_in():
            pairing = await self._connect_to_remote_vc(remote_vc_name, remote_credentials)
            task = await self.protection.create_group(pairing.pairing_id, group_spec)
            task = await self.tasks.wait_for_task_completion(task.id)

        if task.result is not None:
            self.logger.info(f"Protection group reference is {string_to_moref(str(task.result))}")
        return task

    async def run_create_group_and_plan(self) -> Tuple[Task, Optional[Task]]:
        self.logger.info("=== Run Create Protection Group And Recovery Plan Scenario...")
        remote_vc_name = self.config.get_property_not_empty(Keys.REMOTE_VC_NAME)
        group_spec = self.group_spec()
        # Validates the plan settings up front, the group id is filled in later.
        self.plan_spec("")
        remote_credentials = self._remote_credentials()

        async with self.logged_in():
            pairing = await self._connect_to_remote_vc(remote_vc_name, remote_credentials)

            group_task = await self.protection.create_group(pairing.pairing_id, group_spec)
            group_task = await self.tasks.wait_for_task_completion(group_task.id)
            self.logger.info(f"Protection group task finished: {group_task}")
            if group_task.status != TaskStatus.SUCCESS:
                self.logger.error("Protection group was not created, skipping the recovery plan")
                return group_task, None

            plan_spec = self.plan_spec(str(group_task.result))
            plan_task = await self.protection.create_plan(pairing.pairing_id, plan_spec)
            plan_task = await self.tasks.wait_for_task_completion(plan_task.id)
            self.logger.info(f"Recovery plan task finished: {plan_task}")

        return group_task, plan_task

    async def run_recovery_action(self, action: Optional[str] = None) -> Task:
        """Run one recovery plan action: test, cleanup, cancel, recover or reprotect.

        The action defaults to the plan.action property, then to "test".
        """
        action = action or self.config.get_optional(Keys.PLAN_ACTION) or "test"
        if action not in RECOVERY_ACTIONS:
            raise ConfigNotValidError(
                f"Recovery action [{action}] is not one of {', '.join(RECOVERY_ACTIONS)}."
            )
        self.logger.info(f"=== Run Recovery Plan Action '{action}' Scenario...")
        remote_vc_name = self.config.get_property_not_empty(Keys.REMOTE_VC_NAME)
        plan_id = self.config.get_property_not_empty(Keys.PLAN_ID)
        submit = self._recovery_action_call(action, plan_id)
        remote_credentials = self._remote_credentials()

        async with self.logged_in():
            pairing = await self._connect_to_remote_vc(remote_vc_name, remote_credentials)
            task = await submit(pairing.pairing_id)
            return await self.tasks.wait_for_task_completion(task.id)

    def _recovery_action_call(self, action: str, plan_id: str):
        protection = self.protection
        if action == "test":
            spec = TestPlanSpec(sync_data=self.config.get_boolean(Keys.PLAN_SYNC_DATA))
            return lambda pairing_id: protection.run_test_recovery(pairing_id, plan_id, spec)
        if action == "cleanup":
            spec = CleanupTestPlanSpec(forced=self.config.get_boolean(Keys.PLAN_FORCED))
            return lambda pairing_id: protection.run_cleanup_test_recovery(pairing_id, plan_id, spec)
        if action == "cancel":
            return lambda pairing_id: protection.cancel_recovery_plan(pairing_id, plan_id)
        if action == "recover":
            spec = RecoverPlanSpec(
                sync_data=self.config.get_boolean(Keys.PLAN_SYNC_DATA),
                planned_failover=self.config.get_boolean(Keys.PLAN_PLANNED_FAILOVER),
                migrate_eligible_vms=self.config.get_boolean(Keys.PLAN_MIGRATE_ELIGIBLE_VMS),
                skip_protection_site_operations=self.config.get_boolean(
                    Keys.PLAN_SKIP_PROTECTION_SITE_OPERATIONS
                ),
            )
            return lambda pairing_id: protection.run_recovery(pairing_id, plan_id, spec)
        spec = ReprotectPlanSpec(forced=self.config.get_boolean(Keys.PLAN_FORCED))
        return lambda pairing_id: protection.run_reprotect(pairing_id, plan_id, spec)
