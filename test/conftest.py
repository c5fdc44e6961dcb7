from typing import AsyncGenerator, Tuple

import pytest
import pytest_asyncio
from dr_rest_client.config import ExamplesConfig, Keys
from dr_server import PROTECTED_VC_GUID, DrRestServer

BASE_URL_TEMPLATE = "http://localhost:{}"


@pytest_asyncio.fixture
async def server(unused_tcp_port_factory) -> AsyncGenerator[Tuple[DrRestServer, str], None]:
    """Start a mock DR REST gateway on a random port and yield it with its base path URL."""
    port = unused_tcp_port_factory()
    server_instance = DrRestServer(polls_to_complete=3, error_rate=0.0)
    await server_instance.start(port=port)
    try:
        yield server_instance, BASE_URL_TEMPLATE.format(port) + server_instance.base_path
    finally:
        await server_instance.stop()


@pytest.fixture
def properties(server) -> dict:
    """Properties that match the mock gateway's inventory."""
    server_instance, base_url = server
    return {
        Keys.REST_API_BASE_PATH: base_url,
        Keys.SSO_USERNAME: server_instance.username,
        Keys.SSO_PASSWORD: server_instance.password,
        Keys.REMOTE_SSO_USERNAME: server_instance.remote_username,
        Keys.REMOTE_SSO_PASSWORD: server_instance.remote_password,
        Keys.TASK_COMPLETION_RETRY_INTERVAL: "10",
        Keys.TASK_COMPLETION_TIMEOUT: "10",
        Keys.LOCAL_VMS: "app-vm-1, app-vm-3",
        Keys.REMOTE_STORAGE_POLICY: "Gold",
        Keys.REMOTE_DATASTORE: "remote-ds-2",
        Keys.REMOTE_VC_NAME: "vc-remote.example.com",
        Keys.PROTECTED_VC_GUID: PROTECTED_VC_GUID,
        Keys.REPLICATION_TYPE: "hbr",
        Keys.VM: "vm-1",
        Keys.GROUP_NAME: "test-group",
        Keys.GROUP_DESCRIPTION: "",
        Keys.PLAN_NAME: "test-plan",
        Keys.PLAN_TARGET_NETWORK: "network-20",
        Keys.PLAN_TEST_NETWORK: "network-30",
        Keys.PLAN_ID: "plan-7",
        Keys.PLAN_SYNC_DATA: "true",
        Keys.PLAN_FORCED: "FALSE",
        Keys.PLAN_PLANNED_FAILOVER: "True",
        Keys.PLAN_MIGRATE_ELIGIBLE_VMS: "false",
        Keys.PLAN_SKIP_PROTECTION_SITE_OPERATIONS: "false",
    }


@pytest.fixture
def config(properties) -> ExamplesConfig:
    return ExamplesConfig(properties)
